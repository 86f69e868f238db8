"""
Tests for `domain/invoice.py` and `domain/settings.py`.

Covers contract rules:
- tax = round(subtotal * 0.19, 2), total = subtotal + tax.
- A missing lead price contributes exactly 30.
- An empty selection cannot become a draft.
- Status transitions: pending <-> paid, pending -> cancelled, cancelled is terminal.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from domain.assignment import AssignmentItem
from domain.billing_period import BillingPeriod
from domain.invoice import (
    EmptySelectionError,
    InvoiceStatus,
    build_invoice_draft,
    compute_totals,
)
from domain.lead import AssignmentStatus, Lead, PartnerAssignment, ServiceType
from domain.partner import PartnerType
from domain.settings import BillingSettings

MARCH = BillingPeriod.for_month(3, 2024)


def _item(lead_number: str, price=None) -> AssignmentItem:
    lead = Lead(
        lead_id=f"id-{lead_number}",
        lead_number=lead_number,
        service_type=ServiceType.MOVING,
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    assignment = PartnerAssignment(
        assignment_id=None,
        partner_id="p1",
        status=AssignmentStatus.ACCEPTED,
        lead_price=price,
    )
    return AssignmentItem(lead=lead, assignment=assignment)


def test_draft_for_25_and_fallback_30() -> None:
    draft = build_invoice_draft("p1", ServiceType.MOVING, MARCH, [_item("MOV-1", Decimal("25.00")), _item("MOV-2")])

    assert draft.subtotal == Decimal("55.00")
    assert draft.tax == Decimal("10.45")
    assert draft.total == Decimal("65.45")
    assert [line.amount for line in draft.items] == [Decimal("25.00"), Decimal("30")]


def test_draft_line_items_reference_leads() -> None:
    draft = build_invoice_draft("p1", ServiceType.CLEANING, MARCH, [_item("CLN-7")])

    line = draft.items[0]
    assert line.lead_id == "id-CLN-7"
    assert line.description == "cleaning Lead - CLN-7"
    assert draft.billing_period == MARCH
    assert draft.partner_id == "p1"


def test_unpriced_item_contributes_exactly_30() -> None:
    draft = build_invoice_draft("p1", ServiceType.MOVING, MARCH, [_item("MOV-1")])

    assert draft.subtotal == Decimal("30.00")
    assert draft.tax == Decimal("5.70")
    assert draft.total == Decimal("35.70")


@pytest.mark.parametrize(
    ("amounts", "expected_tax"),
    [
        (["0.50"], "0.10"),  # 0.095 rounds half up
        (["10.01"], "1.90"),
        (["33.33", "33.33", "33.34"], "19.00"),
    ],
)
def test_tax_rounds_half_up_to_cents(amounts, expected_tax) -> None:
    subtotal, tax, total = compute_totals(Decimal(a) for a in amounts)

    assert tax == Decimal(expected_tax)
    assert total == subtotal + tax


def test_line_amounts_are_rounded_before_summing() -> None:
    draft = build_invoice_draft(
        "p1",
        ServiceType.MOVING,
        MARCH,
        [_item("MOV-1", Decimal("10.005")), _item("MOV-2", Decimal("10.005"))],
    )

    assert [line.amount for line in draft.items] == [Decimal("10.01"), Decimal("10.01")]
    assert draft.subtotal == sum(line.amount for line in draft.items) == Decimal("20.02")
    assert draft.tax == Decimal("3.80")
    assert draft.total == Decimal("23.82")


def test_empty_selection_is_rejected() -> None:
    with pytest.raises(EmptySelectionError):
        build_invoice_draft("p1", ServiceType.MOVING, MARCH, [])


@pytest.mark.parametrize(
    ("source", "target", "allowed"),
    [
        (InvoiceStatus.PENDING, InvoiceStatus.PAID, True),
        (InvoiceStatus.PAID, InvoiceStatus.PENDING, True),
        (InvoiceStatus.PENDING, InvoiceStatus.CANCELLED, True),
        (InvoiceStatus.PAID, InvoiceStatus.CANCELLED, False),
        (InvoiceStatus.CANCELLED, InvoiceStatus.PENDING, False),
        (InvoiceStatus.CANCELLED, InvoiceStatus.PAID, False),
    ],
)
def test_status_transitions(source: InvoiceStatus, target: InvoiceStatus, allowed: bool) -> None:
    assert source.can_transition_to(target) is allowed


def test_settings_tax_rate_comparison() -> None:
    assert not BillingSettings().tax_rate_differs_from_fixed()
    assert not BillingSettings(tax_rate_percent=Decimal("19")).tax_rate_differs_from_fixed()
    assert BillingSettings(tax_rate_percent=Decimal("7")).tax_rate_differs_from_fixed()


def test_settings_default_lead_price_by_partner_type() -> None:
    settings = BillingSettings(
        lead_prices={
            (ServiceType.MOVING, PartnerType.BASIC): Decimal("25"),
            (ServiceType.MOVING, PartnerType.EXCLUSIVE): Decimal("45"),
        }
    )

    assert settings.default_lead_price(ServiceType.MOVING, PartnerType.EXCLUSIVE) == Decimal("45")
    assert settings.default_lead_price(ServiceType.MOVING, PartnerType.BASIC) == Decimal("25")
    assert settings.default_lead_price(ServiceType.SECURITY, PartnerType.BASIC) is None
