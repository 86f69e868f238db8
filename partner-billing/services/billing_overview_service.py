"""
Billing overview service.

Lists the partners of a billing month with their invoice status and totals the
month's revenue, for the operator's income dashboard.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from domain.billing_period import BillingPeriod
from domain.invoice import Invoice
from domain.lead import ServiceType
from domain.partner import Partner
from repositories.client import StoreRequestError
from repositories.invoice_repository import list_invoices
from repositories.partner_repository import list_partners

logger = logging.getLogger(__name__)


class PartnerInvoiceStatus(str, Enum):
    PENDING = "pending"
    GENERATED = "generated"


@dataclass(frozen=True, slots=True)
class PartnerBillingRow:
    partner: Partner
    invoice_status: PartnerInvoiceStatus
    last_invoice_id: Optional[str] = None
    last_invoice_date: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class BillingOverview:
    """
    Partners of one billing month.

    total is the store's partner count for the page query, before the
    billable-status and invoice-status filters are applied.
    """
    period: BillingPeriod
    rows: List[PartnerBillingRow]
    total: int


def _row_for_partner(partner: Partner, period: BillingPeriod, service_type: Optional[ServiceType]) -> PartnerBillingRow:
    try:
        invoices = list_invoices(partner.partner_id, period, service_type)
    except StoreRequestError as exc:
        # One failing lookup must not hide the whole overview.
        logger.warning("Invoice lookup for partner %s failed, showing as pending: %s", partner.partner_id, exc)
        return PartnerBillingRow(partner=partner, invoice_status=PartnerInvoiceStatus.PENDING)

    if not invoices:
        return PartnerBillingRow(partner=partner, invoice_status=PartnerInvoiceStatus.PENDING)

    last = invoices[0]
    return PartnerBillingRow(
        partner=partner,
        invoice_status=PartnerInvoiceStatus.GENERATED,
        last_invoice_id=last.invoice_id,
        last_invoice_date=last.created_at,
    )


def list_billing_partners(
    month: int,
    year: int,
    service_type: Optional[ServiceType] = None,
    invoice_status: Optional[PartnerInvoiceStatus] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> BillingOverview:
    """
    List billable partners for a month and whether they were invoiced.

    Only active and suspended partners are included. invoice_status=None
    means all.

    Raises:
        ValueError: if month is outside 1-12
        StoreRequestError: if the partner list cannot be fetched
    """

    period = BillingPeriod.for_month(month, year)
    partner_page = list_partners(
        page=page,
        limit=limit,
        service_type=service_type,
        search=search,
        month=month,
        year=year,
    )

    rows = [
        _row_for_partner(partner, period, service_type)
        for partner in partner_page.partners
        if partner.is_billable()
    ]
    if invoice_status is not None:
        rows = [row for row in rows if row.invoice_status is invoice_status]

    return BillingOverview(period=period, rows=rows, total=partner_page.total)


def monthly_revenue(period: BillingPeriod, service_type: Optional[ServiceType] = None) -> Decimal:
    """Sum of invoice totals across all partners for a billing period."""

    invoices: List[Invoice] = list_invoices(period=period, service_type=service_type)
    return sum((invoice.total for invoice in invoices), Decimal("0"))


__all__ = [
    "PartnerInvoiceStatus",
    "PartnerBillingRow",
    "BillingOverview",
    "list_billing_partners",
    "monthly_revenue",
]
