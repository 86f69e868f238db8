"""
Invoices API Endpoints.

Endpoints for invoice details, payment status changes and PDF download.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, Response

from api.errors import http_error_from_missing_partner, http_error_from_store
from api.models import InvoiceDetailResponse, InvoiceResponse, PeriodViewResponse
from repositories.client import StoreRequestError
from repositories.invoice_repository import download_invoice_pdf
from services.invoice_service import mark_paid, mark_unpaid
from services.period_service import PartnerNotFoundError, load_invoice_detail

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/invoices/{invoice_id}",
    response_model=InvoiceDetailResponse,
    summary="Invoice Detail",
    description="Invoice with the billing buckets of its partner and billing period."
)
def get_invoice_detail(invoice_id: str):
    try:
        detail = load_invoice_detail(invoice_id)
        return InvoiceDetailResponse(
            invoice=InvoiceResponse.from_domain(detail.invoice),
            period_view=PeriodViewResponse.from_domain(detail.view) if detail.view else None,
        )

    except PartnerNotFoundError as e:
        raise http_error_from_missing_partner(e)
    except StoreRequestError as e:
        raise http_error_from_store(e)
    except Exception as e:
        logger.exception("Loading invoice %s failed", invoice_id)
        raise HTTPException(status_code=500, detail=f"Failed to load invoice: {str(e)}")


@router.post(
    "/invoices/{invoice_id}/paid",
    response_model=InvoiceResponse,
    summary="Mark Invoice Paid",
)
def mark_invoice_as_paid(invoice_id: str):
    """
    Mark an invoice as paid.

    The billing store validates the transition; a rejection responds 502 and the
    caller should reload the invoice.
    """
    try:
        return InvoiceResponse.from_domain(mark_paid(invoice_id))

    except StoreRequestError as e:
        raise http_error_from_store(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to mark invoice paid: {str(e)}")


@router.post(
    "/invoices/{invoice_id}/unpaid",
    response_model=InvoiceResponse,
    summary="Mark Invoice Unpaid",
)
def mark_invoice_as_unpaid(invoice_id: str):
    """Revert an invoice to pending."""
    try:
        return InvoiceResponse.from_domain(mark_unpaid(invoice_id))

    except StoreRequestError as e:
        raise http_error_from_store(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to mark invoice unpaid: {str(e)}")


@router.get(
    "/invoices/{invoice_id}/pdf",
    summary="Download Invoice PDF",
    description="Download the invoice document rendered by the billing store.",
    response_class=Response
)
def download_invoice(invoice_id: str, language: str = Query("de", pattern="^(de|en)$")):
    """
    **Example usage:**
    ```
    GET /api/v1/invoices/65f1c2a9e4b0a1b2c3d4e5f6/pdf?language=en
    ```

    **Response:**
    PDF file download with filename: `invoice_{invoice_id}.pdf`
    """
    try:
        content = download_invoice_pdf(invoice_id, language=language)
        return Response(
            content=content,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f"attachment; filename=invoice_{invoice_id}.pdf"
            }
        )

    except StoreRequestError as e:
        raise http_error_from_store(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to download invoice: {str(e)}")
