"""
Tests for `services/period_service.py`.

Covers:
- loading and classifying a partner's billing period from the store
- unknown partners
- invoice detail with and without a billing period
- the superseded-load guard
"""

from __future__ import annotations

import logging

import pytest

from domain.billing_period import BillingPeriod
from domain.lead import ServiceType
from repositories.client import StoreRequestError
from services.period_service import (
    PartnerNotFoundError,
    PeriodViewRegistry,
    build_partner_period_view,
    load_invoice_detail,
)

MARCH = BillingPeriod.for_month(3, 2024)

PARTNER_ROW = {"_id": "p1", "companyName": "Umzug Schmidt GmbH", "status": "active"}


def _lead_row(lead_id: str, service_type: str = "moving", **assignment) -> dict:
    return {
        "_id": lead_id,
        "leadId": f"L-{lead_id}",
        "serviceType": service_type,
        "createdAt": "2024-03-01T08:00:00.000Z",
        "partnerAssignments": [dict({"partner": "p1", "status": "accepted"}, **assignment)],
    }


def _invoice_row(invoice_id: str, status: str, *lead_ids: str) -> dict:
    return {
        "_id": invoice_id,
        "partnerId": "p1",
        "serviceType": "moving",
        "billingPeriod": {"startDate": "2024-03-01T00:00:00.000Z", "endDate": "2024-03-31T23:59:59.999Z"},
        "items": [{"leadId": lead_id, "description": "", "amount": 30} for lead_id in lead_ids],
        "subtotal": 30,
        "tax": 5.7,
        "total": 35.7,
        "status": status,
    }


@pytest.fixture
def period_store(store):
    store.on("GET", "/partners/p1", json={"partner": PARTNER_ROW})
    store.on(
        "GET",
        "/partners/p1/leads",
        json={
            "leads": [
                _lead_row("l1", acceptedAt="2024-03-02T10:00:00Z"),
                _lead_row("l2", acceptedAt="2024-03-03T10:00:00Z"),
                _lead_row("l3", acceptedAt="2024-03-04T10:00:00Z"),
                _lead_row("l4", acceptedAt="2024-04-04T10:00:00Z"),
                _lead_row("l5", service_type="cleaning", acceptedAt="2024-03-04T10:00:00Z"),
            ]
        },
    )
    store.on(
        "GET",
        "/invoices",
        json={"invoices": [_invoice_row("i1", "pending", "l2"), _invoice_row("i2", "paid", "l3")]},
    )
    return store


def test_builds_buckets_for_the_period(period_store) -> None:
    view = build_partner_period_view("p1", MARCH)

    assert [item.lead_id for item in view.buckets.unpaid] == ["l1", "l5"]
    assert [item.lead_id for item in view.buckets.invoiced] == ["l2"]
    assert [item.lead_id for item in view.buckets.paid] == ["l3"]
    assert view.partner.company_name == "Umzug Schmidt GmbH"


def test_service_type_filters_leads(period_store) -> None:
    view = build_partner_period_view("p1", MARCH, ServiceType.MOVING)

    assert [item.lead_id for item in view.buckets.unpaid] == ["l1"]
    [request] = period_store.calls("GET", "/invoices")
    assert request.url.params["serviceType"] == "moving"


def test_unknown_partner(store) -> None:
    with pytest.raises(PartnerNotFoundError):
        build_partner_period_view("nobody", MARCH)


def test_store_failure_propagates(store) -> None:
    store.on("GET", "/partners/p1", json={"partner": PARTNER_ROW})
    store.on("GET", "/partners/p1/leads", status_code=503, json={"message": "Database unavailable"})
    store.on("GET", "/invoices", json={"invoices": []})

    with pytest.raises(StoreRequestError) as exc_info:
        build_partner_period_view("p1", MARCH)

    assert exc_info.value.status_code == 503


def test_missing_assignment_timestamp_is_logged(store, caplog) -> None:
    store.on("GET", "/partners/p1", json={"partner": PARTNER_ROW})
    store.on("GET", "/partners/p1/leads", json={"leads": [_lead_row("l1")]})
    store.on("GET", "/invoices", json={"invoices": []})

    with caplog.at_level(logging.WARNING, logger="services.period_service"):
        view = build_partner_period_view("p1", MARCH)

    assert [item.lead_id for item in view.buckets.unpaid] == ["l1"]
    assert "has no acceptedAt/assignedAt" in caplog.text


def test_unrecognized_store_values_do_not_abort_the_period(store) -> None:
    shared = _lead_row("l1", acceptedAt="2024-03-02T10:00:00Z")
    shared["partnerAssignments"].append({"partner": "p2", "status": "cancellation_rejected"})
    store.on("GET", "/partners/p1", json={"partner": PARTNER_ROW})
    store.on(
        "GET",
        "/partners/p1/leads",
        json={
            "leads": [
                shared,
                _lead_row("l2", acceptedAt="2024-03-03T10:00:00Z", status="assigned"),
                _lead_row("l3", service_type="cancellation", acceptedAt="2024-03-04T10:00:00Z"),
            ]
        },
    )
    store.on("GET", "/invoices", json={"invoices": []})

    view = build_partner_period_view("p1", MARCH)

    assert [item.lead_id for item in view.buckets.unpaid] == ["l1"]
    assert view.buckets.invoiced == ()
    assert view.buckets.cancellation_requested == ()


def test_invoice_detail_loads_period_view(period_store) -> None:
    period_store.on("GET", "/invoices/i1", json={"invoice": _invoice_row("i1", "pending", "l2")})

    detail = load_invoice_detail("i1")

    assert detail.invoice.invoice_id == "i1"
    assert detail.view.period == MARCH
    assert [item.lead_id for item in detail.view.buckets.invoiced] == ["l2"]


def test_invoice_detail_without_period(store) -> None:
    row = dict(_invoice_row("i1", "pending", "l2"), billingPeriod=None)
    store.on("GET", "/invoices/i1", json=row)

    detail = load_invoice_detail("i1")

    assert detail.view is None
    assert store.calls("GET", "/partners/p1") == []


def test_registry_drops_superseded_loads() -> None:
    registry = PeriodViewRegistry()
    key = registry.key("p1", MARCH)

    first = registry.begin(key)
    second = registry.begin(key)
    other = registry.begin(registry.key("p1", BillingPeriod.for_month(4, 2024)))

    assert not registry.finish(key, first)
    assert registry.finish(key, second)
    assert registry.finish(registry.key("p1", BillingPeriod.for_month(4, 2024)), other)


def test_registry_forgets_finished_keys() -> None:
    registry = PeriodViewRegistry()
    key = registry.key("p1", MARCH)

    first = registry.begin(key)
    second = registry.begin(key)
    assert registry.finish(key, second)
    assert registry.pending() == 0

    # A new load after the key was released must not collide with the old, stale one.
    third = registry.begin(key)
    assert third not in (first, second)
    assert not registry.finish(key, first)
    assert registry.finish(key, third)
    assert registry.pending() == 0
