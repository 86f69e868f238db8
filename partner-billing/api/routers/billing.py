"""
Billing API Endpoints.

Endpoints for the monthly partner overview, a partner's billing buckets,
invoice generation and cancellation-request rejection.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.errors import http_error_from_missing_partner, http_error_from_store
from api.models import (
    BillingOverviewResponse,
    BillingPeriodResponse,
    GenerateInvoiceRequest,
    GenerateInvoiceResponse,
    InvoiceDraftResponse,
    InvoiceResponse,
    PartnerBillingRowResponse,
    PeriodViewResponse,
    RejectCancellationRequest,
    RejectCancellationResponse,
    RevenueResponse,
)
from domain.billing_period import BillingPeriod
from domain.date_filter import DateFilter, DateFilterType, filter_buckets
from domain.lead import ServiceType
from repositories.client import StoreRequestError
from services.billing_overview_service import (
    PartnerInvoiceStatus,
    list_billing_partners,
    monthly_revenue,
)
from services.cancellation_service import reject_cancellation_requests
from services.invoice_service import generate_invoice
from services.period_service import (
    PartnerNotFoundError,
    PeriodViewRegistry,
    build_partner_period_view,
)

logger = logging.getLogger(__name__)

router = APIRouter()

period_views = PeriodViewRegistry()


@router.get(
    "/billing/partners",
    response_model=BillingOverviewResponse,
    summary="Monthly Partner Billing Overview",
    description="List active and suspended partners of a month with their invoice status."
)
def get_billing_overview(
    month: int = Query(..., ge=1, le=12, description="Billing month (1-12)"),
    year: int = Query(..., ge=2000, description="Billing year"),
    service_type: Optional[ServiceType] = Query(None, description="Filter by service type"),
    invoice_status: Optional[PartnerInvoiceStatus] = Query(None, description="'generated' or 'pending'; omit for all"),
    search: Optional[str] = Query(None, description="Search partners by name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    **Example usage:**
    - All partners of March 2024: `GET /api/v1/billing/partners?month=3&year=2024`
    - Not yet invoiced: `GET /api/v1/billing/partners?month=3&year=2024&invoice_status=pending`
    """
    try:
        overview = list_billing_partners(
            month=month,
            year=year,
            service_type=service_type,
            invoice_status=invoice_status,
            search=search,
            page=page,
            limit=limit,
        )

        filters_applied = {"month": month, "year": year}
        if service_type:
            filters_applied["service_type"] = service_type.value
        if invoice_status:
            filters_applied["invoice_status"] = invoice_status.value
        if search:
            filters_applied["search"] = search

        return BillingOverviewResponse(
            billing_period=BillingPeriodResponse.from_domain(overview.period),
            partners=[PartnerBillingRowResponse.from_domain(row) for row in overview.rows],
            total_count=overview.total,
            filters_applied=filters_applied,
        )

    except HTTPException:
        raise
    except StoreRequestError as e:
        raise http_error_from_store(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Billing overview failed")
        raise HTTPException(status_code=500, detail=f"Failed to load billing overview: {str(e)}")


@router.get(
    "/billing/revenue",
    response_model=RevenueResponse,
    summary="Monthly Revenue",
    description="Sum of invoice totals of all partners for a billing month."
)
def get_monthly_revenue(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
    service_type: Optional[ServiceType] = Query(None),
):
    try:
        period = BillingPeriod.for_month(month, year)
        total = monthly_revenue(period, service_type)
        return RevenueResponse(
            billing_period=BillingPeriodResponse.from_domain(period),
            service_type=service_type.value if service_type else None,
            total=total,
        )

    except StoreRequestError as e:
        raise http_error_from_store(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Revenue lookup failed")
        raise HTTPException(status_code=500, detail=f"Failed to compute revenue: {str(e)}")


@router.get(
    "/partners/{partner_id}/billing",
    response_model=PeriodViewResponse,
    summary="Partner Billing Buckets",
    description="Unpaid, invoiced, paid and cancellation-requested leads of a partner for a month."
)
def get_partner_billing(
    partner_id: str,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
    service_type: Optional[ServiceType] = Query(None),
    filter_type: DateFilterType = Query(DateFilterType.ALL, description="all, single, range, week, month or year"),
    day: Optional[date] = Query(None, description="Reference day for single/week/month/year"),
    from_day: Optional[date] = Query(None, description="First day of a range"),
    to_day: Optional[date] = Query(None, description="Last day of a range"),
):
    """
    Load and classify a partner's billing month.

    The date filter narrows the unpaid and invoiced buckets only; the paid
    bucket always shows the whole month.

    **Example usage:**
    - `GET /api/v1/partners/{id}/billing?month=3&year=2024`
    - `GET /api/v1/partners/{id}/billing?month=3&year=2024&filter_type=range&from_day=2024-03-01&to_day=2024-03-15`

    Responds 409 when a newer request for the same partner and month started
    while this one was loading.
    """
    try:
        date_filter = DateFilter(type=filter_type, day=day, from_day=from_day, to_day=to_day)
        date_filter.bounds()
        period = BillingPeriod.for_month(month, year)

        key = period_views.key(partner_id, period)
        generation = period_views.begin(key)
        try:
            view = build_partner_period_view(partner_id, period, service_type)
        finally:
            current = period_views.finish(key, generation)
        if not current:
            raise HTTPException(
                status_code=409,
                detail="A newer request for this billing period superseded this one"
            )

        return PeriodViewResponse.from_domain(view, filter_buckets(view.buckets, date_filter))

    except HTTPException:
        raise
    except PartnerNotFoundError as e:
        raise http_error_from_missing_partner(e)
    except StoreRequestError as e:
        raise http_error_from_store(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Loading billing period for partner %s failed", partner_id)
        raise HTTPException(status_code=500, detail=f"Failed to load billing period: {str(e)}")


@router.post(
    "/partners/{partner_id}/invoices",
    response_model=GenerateInvoiceResponse,
    summary="Generate Invoice",
    description="Create an invoice from selected unpaid leads of a billing month."
)
def create_partner_invoice(partner_id: str, request: GenerateInvoiceRequest):
    """
    Generate an invoice for selected unpaid leads.

    **Process:**
    1. Loads the partner's billing month fresh from the store
    2. Validates that every selected lead is in the unpaid bucket
    3. Builds the draft: subtotal, 19% tax, total
    4. Submits it once to the billing store

    Validation failures respond 422 without contacting the invoice endpoint.
    Store failures respond 502 with the store's message.

    **Example request:**
    ```json
    {
      "month": 3,
      "year": 2024,
      "service_type": "moving",
      "lead_ids": ["65f1c2a9e4b0a1b2c3d4e5b1", "65f1c2a9e4b0a1b2c3d4e5b2"]
    }
    ```
    """
    try:
        period = BillingPeriod.for_month(request.month, request.year)
        view = build_partner_period_view(partner_id, period, request.service_type)
        result = generate_invoice(view, request.lead_ids, request.service_type)

        if not result.success:
            # No draft means the selection never reached the store.
            status_code = 422 if result.draft is None else 502
            raise HTTPException(status_code=status_code, detail=" ".join(result.errors))

        return GenerateInvoiceResponse(
            success=True,
            invoice=InvoiceResponse.from_domain(result.invoice),
            draft=InvoiceDraftResponse.from_domain(result.draft) if result.draft else None,
            errors=[],
        )

    except HTTPException:
        raise
    except PartnerNotFoundError as e:
        raise http_error_from_missing_partner(e)
    except StoreRequestError as e:
        raise http_error_from_store(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Invoice generation for partner %s failed", partner_id)
        raise HTTPException(status_code=500, detail=f"Failed to generate invoice: {str(e)}")


@router.post(
    "/partners/{partner_id}/cancellation-requests/reject",
    response_model=RejectCancellationResponse,
    summary="Reject Cancellation Requests",
    description="Reject cancellation requests so the leads become billable again."
)
def reject_partner_cancellations(partner_id: str, request: RejectCancellationRequest):
    """
    Reject cancellation requests lead by lead.

    A failing lead does not stop the others; failures are listed per lead id.
    """
    try:
        result = reject_cancellation_requests(partner_id, request.lead_ids, request.reason)
        return RejectCancellationResponse(
            success=result.success,
            rejected=result.rejected,
            failed=result.failed,
        )

    except Exception as e:
        logger.exception("Rejecting cancellations for partner %s failed", partner_id)
        raise HTTPException(status_code=500, detail=f"Failed to reject cancellation requests: {str(e)}")
