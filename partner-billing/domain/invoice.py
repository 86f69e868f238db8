"""
Domain: Invoices and invoice drafts.

Rules implemented here:
- An invoice bills one partner for one billing period.
- Each line item references a lead and carries an amount.
- subtotal = sum(item amounts)
- tax      = round(subtotal * 0.19, 2)   (fixed 19% rate)
- total    = subtotal + tax
- A lead price that was never recorded bills at the fallback unit price (30).
- Status is one of pending / paid / cancelled. cancelled is terminal.

Drafts are in-memory payloads built before submission; they are never persisted
by this engine. The store assigns the invoice number and id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Tuple

from .billing_period import BillingPeriod
from .lead import ServiceType
from .time import require_utc_timestamp

if TYPE_CHECKING:
    from .assignment import AssignmentItem

TAX_RATE = Decimal("0.19")
FALLBACK_LEAD_PRICE = Decimal("30")

_CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Round a currency amount to cents, half up."""

    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"

    def can_transition_to(self, target: "InvoiceStatus") -> bool:
        """
        Allowed transitions:
        pending -> paid, paid -> pending, pending -> cancelled.
        cancelled is terminal.
        """

        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    InvoiceStatus.PENDING: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.PENDING}),
    InvoiceStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class InvoiceLineItem:
    lead_id: str
    description: str
    amount: Decimal
    date: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.date is not None:
            require_utc_timestamp("date", self.date)


@dataclass(frozen=True, slots=True)
class Invoice:
    """Invoice as stored by the external invoice store."""

    invoice_id: str
    invoice_number: str
    partner_id: str
    service_type: Optional[ServiceType]
    billing_period: Optional[BillingPeriod]
    items: Tuple[InvoiceLineItem, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    status: InvoiceStatus
    currency: str = "EUR"
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None

    def __post_init__(self) -> None:
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.paid_at is not None:
            require_utc_timestamp("paid_at", self.paid_at)
        if self.due_at is not None:
            require_utc_timestamp("due_at", self.due_at)

    @property
    def is_paid(self) -> bool:
        return self.status is InvoiceStatus.PAID

    def lead_ids(self) -> Tuple[str, ...]:
        return tuple(item.lead_id for item in self.items)


class EmptySelectionError(ValueError):
    """Raised when an invoice draft is requested for zero items."""


@dataclass(frozen=True, slots=True)
class InvoiceDraft:
    """
    Invoice creation payload, built before any network call.

    Amount fields are always consistent with items; use build_invoice_draft()
    rather than constructing this directly.
    """

    partner_id: str
    service_type: ServiceType
    billing_period: BillingPeriod
    items: Tuple[InvoiceLineItem, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def line_item_description(service_type: ServiceType, lead_number: str) -> str:
    return f"{service_type.value} Lead - {lead_number}"


def compute_totals(amounts: Iterable[Decimal]) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Compute (subtotal, tax, total) for a collection of line amounts.

    Each amount is rounded to cents before summing, so the subtotal equals the
    sum of the line amounts as they appear on the invoice.

    Example:
        compute_totals([Decimal("25.00"), Decimal("30.00")])
        # (Decimal('55.00'), Decimal('10.45'), Decimal('65.45'))
    """

    subtotal = sum((quantize_money(amount) for amount in amounts), Decimal("0.00"))
    tax = quantize_money(subtotal * TAX_RATE)
    return subtotal, tax, subtotal + tax


def build_invoice_draft(
    partner_id: str,
    service_type: ServiceType,
    billing_period: BillingPeriod,
    items: Sequence["AssignmentItem"],
) -> InvoiceDraft:
    """
    Build an invoice draft from selected assignment items.

    Raises:
        EmptySelectionError: if no items were selected
    """

    if not items:
        raise EmptySelectionError("At least one unpaid lead must be selected")

    line_items = tuple(
        InvoiceLineItem(
            lead_id=item.lead.lead_id,
            description=line_item_description(service_type, item.lead.lead_number),
            amount=quantize_money(item.billable_amount()),
        )
        for item in items
    )
    subtotal, tax, total = compute_totals(line.amount for line in line_items)

    return InvoiceDraft(
        partner_id=partner_id,
        service_type=service_type,
        billing_period=billing_period,
        items=line_items,
        subtotal=subtotal,
        tax=tax,
        total=total,
    )
