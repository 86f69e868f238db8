"""
Partner period service.

Loads everything needed to reconcile one partner's billing period and turns it
into a PeriodView:

1. Resolve the partner
2. Fetch all of the partner's leads and the partner's invoices for the period
   (independent reads, dispatched concurrently, both awaited)
3. Flatten and classify in memory (domain.reconciliation)

Nothing is cached: every call works on a fresh snapshot. Store failures
propagate as StoreRequestError; nothing is retried.
"""

from __future__ import annotations

import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from domain.billing_period import BillingPeriod
from domain.invoice import Invoice
from domain.lead import Lead, ServiceType
from domain.partner import Partner
from domain.reconciliation import PeriodView, build_period_view
from repositories.client import StoreRequestError
from repositories.invoice_repository import get_invoice_by_id, list_invoices
from repositories.lead_repository import list_partner_leads
from repositories.partner_repository import get_partner_by_id

logger = logging.getLogger(__name__)


class PartnerNotFoundError(LookupError):
    """Raised when a partner id does not resolve to a partner."""


@dataclass(frozen=True, slots=True)
class PeriodSnapshot:
    """Raw data fetched for one partner and billing period."""
    partner: Partner
    period: BillingPeriod
    leads: List[Lead]
    invoices: List[Invoice]


@dataclass(frozen=True, slots=True)
class InvoiceDetail:
    """An invoice together with the period view of its partner and billing period."""
    invoice: Invoice
    view: Optional[PeriodView]


def load_partner_period(
    partner_id: str,
    period: BillingPeriod,
    service_type: Optional[ServiceType] = None,
) -> PeriodSnapshot:
    """
    Fetch a partner's leads and the partner's invoices for a billing period.

    Leads are fetched unfiltered by status; when service_type is given, leads of
    other service types are dropped.

    Raises:
        PartnerNotFoundError: if the partner does not exist
        StoreRequestError: if any read fails
    """

    partner = get_partner_by_id(partner_id)
    if partner is None:
        raise PartnerNotFoundError(f"Partner not found: {partner_id}")

    with ThreadPoolExecutor(max_workers=2) as pool:
        leads_future = pool.submit(list_partner_leads, partner_id)
        invoices_future = pool.submit(list_invoices, partner_id, period, service_type)
        try:
            leads = leads_future.result()
            invoices = invoices_future.result()
        except StoreRequestError as exc:
            logger.error("Failed to load billing period %s for partner %s: %s", period.key(), partner_id, exc)
            raise

    if service_type is not None:
        leads = [lead for lead in leads if lead.service_type is service_type]

    return PeriodSnapshot(partner=partner, period=period, leads=leads, invoices=invoices)


def view_from_snapshot(snapshot: PeriodSnapshot) -> PeriodView:
    view = build_period_view(snapshot.partner, snapshot.period, snapshot.leads, snapshot.invoices)

    for item in view.items:
        if item.period_timestamp_missing:
            logger.warning(
                "Assignment %s of lead %s has no acceptedAt/assignedAt; counted as in period",
                item.assignment.assignment_id,
                item.lead_id,
            )

    logger.info(
        "Partner %s period %s: %d unpaid, %d invoiced, %d paid, %d cancellation requested",
        snapshot.partner.partner_id,
        snapshot.period.key(),
        len(view.buckets.unpaid),
        len(view.buckets.invoiced),
        len(view.buckets.paid),
        len(view.buckets.cancellation_requested),
    )
    return view


def build_partner_period_view(
    partner_id: str,
    period: BillingPeriod,
    service_type: Optional[ServiceType] = None,
) -> PeriodView:
    """Load and classify one partner's billing period."""

    return view_from_snapshot(load_partner_period(partner_id, period, service_type))


def load_invoice_detail(invoice_id: str) -> InvoiceDetail:
    """
    Fetch an invoice and the period view for its partner and billing period.

    view is None when the invoice carries no billing period.
    """

    invoice = get_invoice_by_id(invoice_id)
    if invoice.billing_period is None:
        logger.warning("Invoice %s has no billing period; skipping lead breakdown", invoice_id)
        return InvoiceDetail(invoice=invoice, view=None)

    view = build_partner_period_view(invoice.partner_id, invoice.billing_period, invoice.service_type)
    return InvoiceDetail(invoice=invoice, view=view)


class PeriodViewRegistry:
    """
    Tracks the newest load per (partner id, period) so superseded loads can be dropped.

    Usage:
        generation = registry.begin(key)
        view = build_partner_period_view(...)
        if registry.finish(key, generation):
            render(view)

    A load that finishes after a newer load for the same key has started is
    reported as stale instead of overwriting the newer result. No views are kept,
    and a key is forgotten once its newest load has finished. Generations are
    unique across keys so a forgotten key never reuses one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._generations: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def key(partner_id: str, period: BillingPeriod) -> Tuple[str, str]:
        return partner_id, period.key()

    def begin(self, key: Tuple[str, str]) -> int:
        with self._lock:
            generation = next(self._counter)
            self._generations[key] = generation
            return generation

    def finish(self, key: Tuple[str, str], generation: int) -> bool:
        """True if this is still the newest load for key; the key is then released."""

        with self._lock:
            current = generation == self._generations.get(key)
            if current:
                del self._generations[key]
        if not current:
            logger.debug("Dropping superseded period view for %s (generation %d)", key, generation)
        return current

    def pending(self) -> int:
        """Number of keys with a load in flight."""

        with self._lock:
            return len(self._generations)


__all__ = [
    "PartnerNotFoundError",
    "PeriodSnapshot",
    "InvoiceDetail",
    "load_partner_period",
    "view_from_snapshot",
    "build_partner_period_view",
    "load_invoice_detail",
    "PeriodViewRegistry",
]
