"""
Tests for `services/billing_overview_service.py` and `services/cancellation_service.py`.
"""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from domain.billing_period import BillingPeriod
from services.billing_overview_service import (
    PartnerInvoiceStatus,
    list_billing_partners,
    monthly_revenue,
)
from services.cancellation_service import reject_cancellation_requests

PARTNERS = {
    "partners": [
        {"_id": "p1", "companyName": "Invoiced GmbH", "status": "active"},
        {"_id": "p2", "companyName": "Pending GmbH", "status": "suspended"},
        {"_id": "p3", "companyName": "Applicant GmbH", "status": "pending"},
        {"_id": "p4", "companyName": "Broken GmbH", "status": "active"},
    ],
    "pagination": {"total": 4},
}


def _invoices_by_partner(request: httpx.Request) -> httpx.Response:
    partner_id = request.url.params.get("partnerId")
    if partner_id == "p4":
        return httpx.Response(500, json={"message": "boom"})
    if partner_id == "p1":
        row = {"_id": "inv1", "partnerId": "p1", "total": 65.45, "status": "pending", "createdAt": "2024-04-01T09:00:00Z"}
        return httpx.Response(200, json={"invoices": [row]})
    if partner_id is None:
        rows = [
            {"_id": "inv1", "partnerId": "p1", "total": 65.45, "status": "pending"},
            {"_id": "inv2", "partnerId": "p2", "total": 35.70, "status": "paid"},
        ]
        return httpx.Response(200, json={"invoices": rows})
    return httpx.Response(200, json={"invoices": []})


@pytest.fixture
def overview_store(store):
    store.on("GET", "/partners", json=PARTNERS)
    store.on("GET", "/invoices", handler=_invoices_by_partner)
    return store


def test_overview_lists_billable_partners_with_status(overview_store) -> None:
    overview = list_billing_partners(month=3, year=2024)

    rows = {row.partner.partner_id: row for row in overview.rows}
    assert set(rows) == {"p1", "p2", "p4"}
    assert rows["p1"].invoice_status is PartnerInvoiceStatus.GENERATED
    assert rows["p1"].last_invoice_id == "inv1"
    assert rows["p2"].invoice_status is PartnerInvoiceStatus.PENDING
    # failed lookup degrades to pending
    assert rows["p4"].invoice_status is PartnerInvoiceStatus.PENDING
    assert overview.total == 4
    assert overview.period == BillingPeriod.for_month(3, 2024)


def test_overview_filters_by_invoice_status(overview_store) -> None:
    overview = list_billing_partners(month=3, year=2024, invoice_status=PartnerInvoiceStatus.GENERATED)

    assert [row.partner.partner_id for row in overview.rows] == ["p1"]


def test_overview_rejects_invalid_month(store) -> None:
    with pytest.raises(ValueError):
        list_billing_partners(month=13, year=2024)
    assert store.requests == []


def test_monthly_revenue_sums_invoice_totals(overview_store) -> None:
    assert monthly_revenue(BillingPeriod.for_month(3, 2024)) == Decimal("101.15")


def test_reject_cancellations_continues_after_failure(store) -> None:
    lead = {"_id": "l1", "serviceType": "moving", "createdAt": "2024-03-01T00:00:00Z"}
    store.on("PUT", "/leads/l1/partners/p1/cancel", json={"lead": lead})
    store.on("PUT", "/leads/l2/partners/p1/cancel", status_code=400, json={"message": "No cancellation request"})
    store.on("PUT", "/leads/l3/partners/p1/cancel", json={"lead": dict(lead, _id="l3")})

    result = reject_cancellation_requests("p1", ["l1", "l2", "l3", "l1"], reason="Lead was valid")

    assert result.rejected == ["l1", "l3"]
    assert result.failed == {"l2": "No cancellation request"}
    assert not result.success
    assert len(store.calls("PUT", "/leads/l1/partners/p1/cancel")) == 1
    body = json.loads(store.calls("PUT", "/leads/l3/partners/p1/cancel")[0].content)
    assert body == {"action": "reject", "reason": "Lead was valid"}
