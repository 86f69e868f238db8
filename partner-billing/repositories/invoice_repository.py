"""
Invoice repository (store access).

This module provides *only* store operations for invoices: listing, detail,
creation from a draft, the two payment-status transitions and PDF download.
It does not validate transitions; the store is authoritative.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from domain.billing_period import BillingPeriod
from domain.invoice import Invoice, InvoiceDraft, InvoiceLineItem, InvoiceStatus
from domain.lead import ServiceType
from domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_wire_instant
from repositories.client import request_json, send, unwrap
from repositories.serialization import money_to_wire, optional_decimal, ref_id

# Legacy store statuses that all mean "issued, not paid yet".
_PENDING_ALIASES = frozenset({"draft", "sent", "overdue", "unpaid"})


def _parse_status(value: Any) -> InvoiceStatus:
    text = str(value or InvoiceStatus.PENDING.value)
    if text in _PENDING_ALIASES:
        return InvoiceStatus.PENDING
    return InvoiceStatus(text)


def _parse_service_type(value: Any) -> Optional[ServiceType]:
    if not value:
        return None
    return ServiceType(str(value))


def _parse_billing_period(value: Any) -> Optional[BillingPeriod]:
    """The store has used both {startDate, endDate} and {from, to}."""

    if not isinstance(value, Mapping):
        return None
    start = value.get("startDate") or value.get("from")
    end = value.get("endDate") or value.get("to")
    if not start or not end:
        return None
    return BillingPeriod(start=parse_utc_datetime(start), end=parse_utc_datetime(end))


def _row_to_line_item(row: Mapping[str, Any]) -> InvoiceLineItem:
    return InvoiceLineItem(
        lead_id=ref_id(row.get("leadId")) or "",
        description=str(row.get("description") or ""),
        amount=optional_decimal(row.get("amount")) or Decimal("0"),
        date=parse_optional_utc_datetime(row.get("date")),
    )


def _row_to_invoice(row: Mapping[str, Any]) -> Invoice:
    """Convert a store invoice document into a domain Invoice."""

    invoice_id = ref_id(row.get("_id")) or ref_id(row.get("id"))
    if invoice_id is None:
        raise ValueError("Invoice row has no _id")

    return Invoice(
        invoice_id=invoice_id,
        invoice_number=str(row.get("invoiceNumber") or f"INV-{invoice_id[-6:]}"),
        partner_id=ref_id(row.get("partnerId")) or "",
        service_type=_parse_service_type(row.get("serviceType")),
        billing_period=_parse_billing_period(row.get("billingPeriod")),
        items=tuple(_row_to_line_item(item) for item in row.get("items") or []),
        subtotal=optional_decimal(row.get("subtotal")) or Decimal("0"),
        tax=optional_decimal(row.get("tax")) or Decimal("0"),
        total=optional_decimal(row.get("total")) or Decimal("0"),
        status=_parse_status(row.get("status")),
        currency=str(row.get("currency") or "EUR"),
        created_at=parse_optional_utc_datetime(row.get("createdAt")),
        paid_at=parse_optional_utc_datetime(row.get("paidAt")),
        due_at=parse_optional_utc_datetime(row.get("dueAt")),
        payment_method=row.get("paymentMethod"),
        payment_reference=row.get("paymentReference"),
    )


def _draft_to_payload(draft: InvoiceDraft) -> Dict[str, Any]:
    """Convert an InvoiceDraft into the POST /invoices/generate body."""

    return {
        "partnerId": draft.partner_id,
        "serviceType": draft.service_type.value,
        "billingPeriod": {
            "startDate": to_wire_instant(draft.billing_period.start, name="startDate"),
            "endDate": to_wire_instant(draft.billing_period.end, name="endDate"),
        },
        "items": [
            {
                "leadId": item.lead_id,
                "description": item.description,
                "amount": money_to_wire(item.amount),
            }
            for item in draft.items
        ],
        "subtotal": money_to_wire(draft.subtotal),
        "tax": money_to_wire(draft.tax),
        "total": money_to_wire(draft.total),
    }


def list_invoices(
    partner_id: Optional[str] = None,
    period: Optional[BillingPeriod] = None,
    service_type: Optional[ServiceType] = None,
) -> List[Invoice]:
    """
    List invoices, optionally for one partner, period and service type.

    The store paginates; every page is fetched so that reconciliation sees the
    complete set for the period.
    """

    params: dict[str, Any] = {
        "partnerId": partner_id,
        "serviceType": service_type.value if service_type else None,
    }
    if period is not None:
        params["startDate"] = to_wire_instant(period.start, name="startDate")
        params["endDate"] = to_wire_instant(period.end, name="endDate")

    invoices: List[Invoice] = []
    page = 1
    while True:
        query = dict(params, page=page if page > 1 else None)
        body = request_json("GET", "/invoices", params=query)
        rows = body.get("invoices", []) if isinstance(body, Mapping) else body
        invoices.extend(_row_to_invoice(row) for row in rows or [])

        pagination = body.get("pagination") if isinstance(body, Mapping) else None
        pages = int(pagination.get("pages") or 1) if isinstance(pagination, Mapping) else 1
        if page >= pages:
            return invoices
        page += 1


def get_invoice_by_id(invoice_id: str) -> Invoice:
    """
    Fetch a single invoice.

    Raises:
        StoreRequestError: with status_code 404 when the invoice does not exist
    """

    body = request_json("GET", f"/invoices/{invoice_id}")
    return _row_to_invoice(unwrap(body, "invoice"))


def create_invoice(draft: InvoiceDraft) -> Invoice:
    """
    Submit an invoice draft. The store assigns id and invoice number.

    A single atomic call: either the invoice exists afterwards or nothing changed.
    """

    body = request_json("POST", "/invoices/generate", json=_draft_to_payload(draft))
    return _row_to_invoice(unwrap(body, "invoice"))


def mark_invoice_paid(invoice_id: str) -> Invoice:
    body = request_json("PATCH", f"/invoices/{invoice_id}/paid")
    return _row_to_invoice(unwrap(body, "invoice"))


def mark_invoice_unpaid(invoice_id: str) -> Invoice:
    """The store's 'unpaid' is stored as status pending."""

    body = request_json("PUT", f"/invoices/{invoice_id}/mark-unpaid")
    return _row_to_invoice(unwrap(body, "invoice"))


def download_invoice_pdf(invoice_id: str, language: str = "de") -> bytes:
    """Return the rendered PDF document for an invoice."""

    response = send("GET", f"/invoices/{invoice_id}/download", params={"language": language})
    return response.content


__all__ = [
    "list_invoices",
    "get_invoice_by_id",
    "create_invoice",
    "mark_invoice_paid",
    "mark_invoice_unpaid",
    "download_invoice_pdf",
]
