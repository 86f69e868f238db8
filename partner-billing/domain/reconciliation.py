"""
Domain: Invoice membership index, bucket classifier and the period view.

Classification of an assignment item against the invoices of its period:
- paid:     its lead id is a line item of an invoice with status paid
- invoiced: its lead id is a line item of an invoice with any other status,
            and the assignment is not cancellationRequested
- unpaid:   its lead id is on no invoice of the period,
            and the assignment is not cancellationRequested
- cancellationRequested items that are not paid land in none of the three
  buckets; they are kept separately so an operator can reject the request.

Every item lands in exactly one of the four groups. Classification is a pure
function of (items, index): same inputs, same partition.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .assignment import AssignmentItem, flatten_assignments
from .billing_period import BillingPeriod
from .invoice import Invoice, InvoiceStatus
from .lead import Lead
from .partner import Partner


@dataclass(frozen=True, slots=True)
class InvoiceMembership:
    invoice_id: str
    status: InvoiceStatus


def build_membership_index(invoices: Iterable[Invoice]) -> Dict[str, InvoiceMembership]:
    """
    Map lead id -> membership of the first invoice listing that lead.

    A lead billed on several invoices of one period should not happen; the first
    invoice found wins and the others are ignored.
    """

    index: Dict[str, InvoiceMembership] = {}
    for invoice in invoices:
        for lead_id in invoice.lead_ids():
            if lead_id not in index:
                index[lead_id] = InvoiceMembership(invoice_id=invoice.invoice_id, status=invoice.status)
    return index


@dataclass(frozen=True, slots=True)
class BillingBuckets:
    unpaid: Tuple[AssignmentItem, ...] = ()
    invoiced: Tuple[AssignmentItem, ...] = ()
    paid: Tuple[AssignmentItem, ...] = ()
    cancellation_requested: Tuple[AssignmentItem, ...] = ()


def classify_assignments(
    items: Sequence[AssignmentItem],
    index: Mapping[str, InvoiceMembership],
) -> BillingBuckets:
    """Partition assignment items into billing buckets. Order within a bucket follows input order."""

    unpaid: List[AssignmentItem] = []
    invoiced: List[AssignmentItem] = []
    paid: List[AssignmentItem] = []
    cancellation_requested: List[AssignmentItem] = []

    for item in items:
        membership = index.get(item.lead_id)
        if membership is not None and membership.status is InvoiceStatus.PAID:
            paid.append(item)
        elif item.is_cancellation_requested:
            cancellation_requested.append(item)
        elif membership is not None:
            invoiced.append(item)
        else:
            unpaid.append(item)

    return BillingBuckets(
        unpaid=tuple(unpaid),
        invoiced=tuple(invoiced),
        paid=tuple(paid),
        cancellation_requested=tuple(cancellation_requested),
    )


@dataclass(frozen=True, slots=True)
class PeriodView:
    """
    Everything the operator sees for one partner and billing period.

    Built from freshly fetched snapshots by build_period_view(); never mutated
    and never cached.
    """

    partner: Partner
    period: BillingPeriod
    leads: Tuple[Lead, ...]
    invoices: Tuple[Invoice, ...]
    items: Tuple[AssignmentItem, ...]
    buckets: BillingBuckets

    def unpaid_for_lead_ids(self, lead_ids: Iterable[str]) -> Tuple[AssignmentItem, ...]:
        """
        Unpaid items whose lead id was selected, in bucket order.

        Every unpaid assignment of a selected lead is included: repeated
        assignments are billed as separate rows.
        """

        wanted = set(lead_ids)
        return tuple(item for item in self.buckets.unpaid if item.lead_id in wanted)


def build_period_view(
    partner: Partner,
    period: BillingPeriod,
    leads: Sequence[Lead],
    invoices: Sequence[Invoice],
) -> PeriodView:
    items = flatten_assignments(leads, partner.partner_id, period)
    buckets = classify_assignments(items, build_membership_index(invoices))
    return PeriodView(
        partner=partner,
        period=period,
        leads=tuple(leads),
        invoices=tuple(invoices),
        items=tuple(items),
        buckets=buckets,
    )
