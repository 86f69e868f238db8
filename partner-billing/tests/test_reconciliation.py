"""
Tests for `domain/reconciliation.py`.

Covers contract rules:
- Every item lands in exactly one of unpaid / invoiced / paid / cancellation requested.
- A paid invoice wins over a cancellation request.
- Classification is deterministic.
- Selection by lead id returns every unpaid assignment of the lead.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from domain.assignment import flatten_assignments
from domain.billing_period import BillingPeriod
from domain.invoice import Invoice, InvoiceLineItem, InvoiceStatus
from domain.lead import AssignmentStatus, Lead, PartnerAssignment, ServiceType
from domain.partner import Partner, PartnerStatus
from domain.reconciliation import (
    build_membership_index,
    build_period_view,
    classify_assignments,
)

PARTNER = Partner(partner_id="p1", company_name="Umzug Schmidt GmbH", status=PartnerStatus.ACTIVE)
MARCH = BillingPeriod.for_month(3, 2024)


def _lead(lead_id: str, status: AssignmentStatus = AssignmentStatus.ACCEPTED, repeat: int = 1) -> Lead:
    assignments = tuple(
        PartnerAssignment(
            assignment_id=f"{lead_id}-{n}",
            partner_id="p1",
            status=status,
            accepted_at=datetime(2024, 3, 10 + n, tzinfo=timezone.utc),
        )
        for n in range(repeat)
    )
    return Lead(
        lead_id=lead_id,
        lead_number=f"MOV-{lead_id}",
        service_type=ServiceType.MOVING,
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        partner_assignments=assignments,
    )


def _invoice(invoice_id: str, status: InvoiceStatus, *lead_ids: str) -> Invoice:
    return Invoice(
        invoice_id=invoice_id,
        invoice_number=f"INV-{invoice_id}",
        partner_id="p1",
        service_type=ServiceType.MOVING,
        billing_period=MARCH,
        items=tuple(InvoiceLineItem(lead_id=l, description="", amount=Decimal("30")) for l in lead_ids),
        subtotal=Decimal("0"),
        tax=Decimal("0"),
        total=Decimal("0"),
        status=status,
    )


def _ids(items) -> list:
    return [item.lead_id for item in items]


def test_buckets_partition_all_items() -> None:
    leads = [
        _lead("unpaid"),
        _lead("invoiced"),
        _lead("paid"),
        _lead("cancel", AssignmentStatus.CANCELLATION_REQUESTED),
    ]
    invoices = [
        _invoice("i1", InvoiceStatus.PENDING, "invoiced"),
        _invoice("i2", InvoiceStatus.PAID, "paid"),
    ]

    view = build_period_view(PARTNER, MARCH, leads, invoices)
    buckets = view.buckets

    assert _ids(buckets.unpaid) == ["unpaid"]
    assert _ids(buckets.invoiced) == ["invoiced"]
    assert _ids(buckets.paid) == ["paid"]
    assert _ids(buckets.cancellation_requested) == ["cancel"]

    groups = [buckets.unpaid, buckets.invoiced, buckets.paid, buckets.cancellation_requested]
    assert sum(len(group) for group in groups) == len(view.items)


def test_paid_invoice_wins_over_cancellation_request() -> None:
    leads = [_lead("l1", AssignmentStatus.CANCELLATION_REQUESTED)]
    view = build_period_view(PARTNER, MARCH, leads, [_invoice("i1", InvoiceStatus.PAID, "l1")])

    assert _ids(view.buckets.paid) == ["l1"]
    assert view.buckets.cancellation_requested == ()


def test_cancellation_request_on_pending_invoice_is_excluded() -> None:
    leads = [_lead("l1", AssignmentStatus.CANCELLATION_REQUESTED)]
    view = build_period_view(PARTNER, MARCH, leads, [_invoice("i1", InvoiceStatus.PENDING, "l1")])

    assert view.buckets.invoiced == ()
    assert _ids(view.buckets.cancellation_requested) == ["l1"]


def test_cancelled_invoice_counts_as_invoiced() -> None:
    view = build_period_view(PARTNER, MARCH, [_lead("l1")], [_invoice("i1", InvoiceStatus.CANCELLED, "l1")])

    assert _ids(view.buckets.invoiced) == ["l1"]


def test_classification_is_deterministic() -> None:
    items = flatten_assignments([_lead("a"), _lead("b"), _lead("c", repeat=2)], "p1", MARCH)
    index = build_membership_index([_invoice("i1", InvoiceStatus.PAID, "b")])

    assert classify_assignments(items, index) == classify_assignments(items, index)


def test_first_invoice_listing_a_lead_wins() -> None:
    index = build_membership_index(
        [
            _invoice("i1", InvoiceStatus.PENDING, "l1"),
            _invoice("i2", InvoiceStatus.PAID, "l1", "l2"),
        ]
    )

    assert index["l1"].invoice_id == "i1"
    assert index["l1"].status is InvoiceStatus.PENDING
    assert index["l2"].invoice_id == "i2"


def test_unpaid_for_lead_ids_returns_every_assignment_of_the_lead() -> None:
    view = build_period_view(PARTNER, MARCH, [_lead("a", repeat=2), _lead("b")], [])

    selected = view.unpaid_for_lead_ids(["a"])

    assert _ids(selected) == ["a", "a"]
    assert view.unpaid_for_lead_ids(["missing"]) == ()
