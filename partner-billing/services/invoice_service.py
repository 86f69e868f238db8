"""
Invoice service for generating invoices and changing their payment status.

Handles:
- Selection validation against the unpaid bucket (before any network call)
- Draft building (subtotal, fixed 19% tax, total)
- Single-call submission to the invoice store, no retry
- Mark paid / mark unpaid transitions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from domain.invoice import Invoice, InvoiceDraft, build_invoice_draft
from domain.lead import ServiceType
from domain.reconciliation import PeriodView
from repositories.client import StoreRequestError
from repositories.invoice_repository import (
    create_invoice,
    mark_invoice_paid,
    mark_invoice_unpaid,
)
from repositories.settings_repository import get_billing_settings

logger = logging.getLogger(__name__)

GENERIC_SUBMISSION_ERROR = "Invoice creation failed. Please try again."
SUBMISSION_ERROR_PREFIX = "Invoice creation failed: "


@dataclass(frozen=True, slots=True)
class InvoiceGenerationResult:
    """
    Result of an invoice generation attempt.

    success: True if the store created the invoice
    invoice: the created invoice (None unless success)
    draft: the submitted draft (None when validation failed before building it)
    errors: List of error messages (empty if success=True)
    """
    success: bool
    invoice: Optional[Invoice] = None
    draft: Optional[InvoiceDraft] = None
    errors: List[str] = field(default_factory=list)


def _warn_on_tax_rate_mismatch() -> None:
    """Invoices use the fixed rate; a different configured rate is logged, never applied."""

    try:
        settings = get_billing_settings()
    except (StoreRequestError, ArithmeticError, ValueError) as exc:
        logger.warning("Could not read billing settings to compare tax rates: %r", exc)
        return

    if settings.tax_rate_differs_from_fixed():
        logger.warning(
            "Configured tax rate %s%% differs from the fixed invoice tax rate of 19%%",
            settings.tax_rate_percent,
        )


def generate_invoice(
    view: PeriodView,
    selected_lead_ids: Sequence[str],
    service_type: ServiceType,
) -> InvoiceGenerationResult:
    """
    Generate an invoice for selected unpaid leads of a period view.

    Process:
    1. Reject an empty selection (no network call)
    2. Reject lead ids that are not in the unpaid bucket (no network call)
    3. Build the draft from every unpaid assignment of the selected leads
    4. POST the draft once; surface the store's message on failure

    The view is not updated; reload it to see the new invoice.

    Example:
        view = build_partner_period_view(partner_id, BillingPeriod.for_month(3, 2024))
        result = generate_invoice(view, ["lead-1", "lead-2"], ServiceType.MOVING)
        if not result.success:
            print(result.errors)
    """

    if not selected_lead_ids:
        return InvoiceGenerationResult(success=False, errors=["No unpaid leads selected"])

    items = view.unpaid_for_lead_ids(selected_lead_ids)
    found = {item.lead_id for item in items}
    not_unpaid = [lead_id for lead_id in dict.fromkeys(selected_lead_ids) if lead_id not in found]
    if not_unpaid:
        return InvoiceGenerationResult(
            success=False,
            errors=[f"Leads are not unpaid in this billing period: {', '.join(not_unpaid)}"],
        )

    draft = build_invoice_draft(view.partner.partner_id, service_type, view.period, items)
    _warn_on_tax_rate_mismatch()

    try:
        invoice = create_invoice(draft)
    except StoreRequestError as exc:
        logger.error("Invoice creation for partner %s failed: %s", draft.partner_id, exc)
        message = SUBMISSION_ERROR_PREFIX + exc.store_message if exc.store_message else GENERIC_SUBMISSION_ERROR
        return InvoiceGenerationResult(success=False, draft=draft, errors=[message])

    logger.info(
        "Created invoice %s for partner %s: %d items, total %s",
        invoice.invoice_number,
        draft.partner_id,
        len(draft.items),
        draft.total,
    )
    return InvoiceGenerationResult(success=True, invoice=invoice, draft=draft)


def mark_paid(invoice_id: str) -> Invoice:
    """
    Mark an invoice as paid. The current status is not checked locally.

    Raises:
        StoreRequestError: if the store rejects the transition
    """

    try:
        invoice = mark_invoice_paid(invoice_id)
    except StoreRequestError as exc:
        logger.error("Marking invoice %s paid failed: %s", invoice_id, exc)
        raise
    logger.info("Invoice %s marked paid", invoice_id)
    return invoice


def mark_unpaid(invoice_id: str) -> Invoice:
    """
    Mark an invoice as unpaid (stored as pending). The current status is not checked locally.

    Raises:
        StoreRequestError: if the store rejects the transition
    """

    try:
        invoice = mark_invoice_unpaid(invoice_id)
    except StoreRequestError as exc:
        logger.error("Marking invoice %s unpaid failed: %s", invoice_id, exc)
        raise
    logger.info("Invoice %s marked unpaid", invoice_id)
    return invoice


__all__ = [
    "InvoiceGenerationResult",
    "generate_invoice",
    "mark_paid",
    "mark_unpaid",
]
