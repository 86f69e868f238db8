"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.assignment import AssignmentItem
from domain.billing_period import BillingPeriod
from domain.invoice import Invoice, InvoiceDraft, InvoiceLineItem, quantize_money
from domain.lead import ServiceType
from domain.partner import Partner
from domain.reconciliation import BillingBuckets, PeriodView
from services.billing_overview_service import PartnerBillingRow


# ============================================================================
# Shared Models
# ============================================================================

class BillingPeriodResponse(BaseModel):
    """Inclusive billing period bounds (UTC)."""
    start: datetime
    end: datetime

    @classmethod
    def from_domain(cls, period: BillingPeriod) -> "BillingPeriodResponse":
        return cls(start=period.start, end=period.end)


class PartnerResponse(BaseModel):
    """Partner summary."""
    partner_id: str
    company_name: str
    status: str
    partner_type: str
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None

    @classmethod
    def from_domain(cls, partner: Partner) -> "PartnerResponse":
        return cls(
            partner_id=partner.partner_id,
            company_name=partner.company_name,
            status=partner.status.value,
            partner_type=partner.partner_type.value,
            contact_name=partner.contact_name,
            contact_email=partner.contact_email,
        )


# ============================================================================
# Invoice Models
# ============================================================================

class InvoiceLineItemResponse(BaseModel):
    """Single line item of an invoice."""
    lead_id: str
    description: str
    amount: Decimal

    @classmethod
    def from_domain(cls, item: InvoiceLineItem) -> "InvoiceLineItemResponse":
        return cls(lead_id=item.lead_id, description=item.description, amount=item.amount)


class InvoiceResponse(BaseModel):
    """Invoice as stored by the billing store."""
    invoice_id: str
    invoice_number: str
    partner_id: str
    service_type: Optional[str] = None
    billing_period: Optional[BillingPeriodResponse] = None
    items: List[InvoiceLineItemResponse]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    status: str
    currency: str
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "invoice_id": "65f1c2a9e4b0a1b2c3d4e5f6",
                "invoice_number": "INV-2024-0042",
                "partner_id": "65f1c2a9e4b0a1b2c3d4e5a1",
                "service_type": "moving",
                "billing_period": {
                    "start": "2024-03-01T00:00:00Z",
                    "end": "2024-03-31T23:59:59.999000Z"
                },
                "items": [
                    {"lead_id": "65f1c2a9e4b0a1b2c3d4e5b1", "description": "moving Lead - MOV-1001", "amount": "25.00"},
                    {"lead_id": "65f1c2a9e4b0a1b2c3d4e5b2", "description": "moving Lead - MOV-1002", "amount": "30.00"}
                ],
                "subtotal": "55.00",
                "tax": "10.45",
                "total": "65.45",
                "status": "pending",
                "currency": "EUR",
                "created_at": "2024-04-01T09:00:00Z",
                "paid_at": None
            }
        }

    @classmethod
    def from_domain(cls, invoice: Invoice) -> "InvoiceResponse":
        return cls(
            invoice_id=invoice.invoice_id,
            invoice_number=invoice.invoice_number,
            partner_id=invoice.partner_id,
            service_type=invoice.service_type.value if invoice.service_type else None,
            billing_period=(
                BillingPeriodResponse.from_domain(invoice.billing_period)
                if invoice.billing_period
                else None
            ),
            items=[InvoiceLineItemResponse.from_domain(item) for item in invoice.items],
            subtotal=invoice.subtotal,
            tax=invoice.tax,
            total=invoice.total,
            status=invoice.status.value,
            currency=invoice.currency,
            created_at=invoice.created_at,
            paid_at=invoice.paid_at,
        )


class InvoiceDraftResponse(BaseModel):
    """Draft that was submitted to the store."""
    partner_id: str
    service_type: str
    billing_period: BillingPeriodResponse
    items: List[InvoiceLineItemResponse]
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    @classmethod
    def from_domain(cls, draft: InvoiceDraft) -> "InvoiceDraftResponse":
        return cls(
            partner_id=draft.partner_id,
            service_type=draft.service_type.value,
            billing_period=BillingPeriodResponse.from_domain(draft.billing_period),
            items=[InvoiceLineItemResponse.from_domain(item) for item in draft.items],
            subtotal=draft.subtotal,
            tax=draft.tax,
            total=draft.total,
        )


class GenerateInvoiceRequest(BaseModel):
    """Request to generate an invoice from unpaid leads of a billing month."""
    month: int = Field(..., ge=1, le=12, description="Billing month (1-12)")
    year: int = Field(..., ge=2000, description="Billing year")
    service_type: ServiceType = Field(..., description="Service type of the invoice")
    lead_ids: List[str] = Field(
        default_factory=list,
        description="Lead ids selected from the unpaid bucket"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "month": 3,
                "year": 2024,
                "service_type": "moving",
                "lead_ids": [
                    "65f1c2a9e4b0a1b2c3d4e5b1",
                    "65f1c2a9e4b0a1b2c3d4e5b2"
                ]
            }
        }


class GenerateInvoiceResponse(BaseModel):
    """Response after a successful invoice generation."""
    success: bool
    invoice: Optional[InvoiceResponse] = None
    draft: Optional[InvoiceDraftResponse] = None
    errors: List[str] = []


# ============================================================================
# Period View Models
# ============================================================================

class AssignmentItemResponse(BaseModel):
    """One (lead, partner assignment) row of a billing bucket."""
    lead_id: str
    lead_number: str
    service_type: str
    customer_name: Optional[str] = None
    assignment_status: str
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    effective_date: datetime
    amount: Decimal

    @classmethod
    def from_domain(cls, item: AssignmentItem) -> "AssignmentItemResponse":
        return cls(
            lead_id=item.lead_id,
            lead_number=item.lead.lead_number,
            service_type=item.lead.service_type.value,
            customer_name=item.lead.customer_name,
            assignment_status=item.assignment.status.value,
            assigned_at=item.assignment.assigned_at,
            accepted_at=item.assignment.accepted_at,
            effective_date=item.effective_date(),
            amount=quantize_money(item.billable_amount()),
        )


def _items(items) -> List[AssignmentItemResponse]:
    return [AssignmentItemResponse.from_domain(item) for item in items]


class PeriodViewResponse(BaseModel):
    """Billing buckets of one partner and billing period."""
    partner: PartnerResponse
    billing_period: BillingPeriodResponse
    unpaid: List[AssignmentItemResponse]
    invoiced: List[AssignmentItemResponse]
    paid: List[AssignmentItemResponse]
    cancellation_requested: List[AssignmentItemResponse]
    invoices: List[InvoiceResponse]
    unpaid_total: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "partner": {
                    "partner_id": "65f1c2a9e4b0a1b2c3d4e5a1",
                    "company_name": "Umzug Schmidt GmbH",
                    "status": "active",
                    "partner_type": "basic",
                    "contact_name": "Anna Schmidt",
                    "contact_email": "anna@umzug-schmidt.de"
                },
                "billing_period": {
                    "start": "2024-03-01T00:00:00Z",
                    "end": "2024-03-31T23:59:59.999000Z"
                },
                "unpaid": [],
                "invoiced": [],
                "paid": [],
                "cancellation_requested": [],
                "invoices": [],
                "unpaid_total": "0"
            }
        }

    @classmethod
    def from_domain(cls, view: PeriodView, buckets: Optional[BillingBuckets] = None) -> "PeriodViewResponse":
        """buckets overrides view.buckets, e.g. with date-filtered buckets."""

        buckets = buckets if buckets is not None else view.buckets
        return cls(
            partner=PartnerResponse.from_domain(view.partner),
            billing_period=BillingPeriodResponse.from_domain(view.period),
            unpaid=_items(buckets.unpaid),
            invoiced=_items(buckets.invoiced),
            paid=_items(buckets.paid),
            cancellation_requested=_items(buckets.cancellation_requested),
            invoices=[InvoiceResponse.from_domain(invoice) for invoice in view.invoices],
            unpaid_total=sum((quantize_money(item.billable_amount()) for item in buckets.unpaid), Decimal("0.00")),
        )


class InvoiceDetailResponse(BaseModel):
    """Invoice with the buckets of its partner and billing period."""
    invoice: InvoiceResponse
    period_view: Optional[PeriodViewResponse] = None


# ============================================================================
# Overview Models
# ============================================================================

class PartnerBillingRowResponse(BaseModel):
    """Partner row of the monthly billing overview."""
    partner: PartnerResponse
    invoice_status: str  # "generated" or "pending"
    last_invoice_id: Optional[str] = None
    last_invoice_date: Optional[datetime] = None

    @classmethod
    def from_domain(cls, row: PartnerBillingRow) -> "PartnerBillingRowResponse":
        return cls(
            partner=PartnerResponse.from_domain(row.partner),
            invoice_status=row.invoice_status.value,
            last_invoice_id=row.last_invoice_id,
            last_invoice_date=row.last_invoice_date,
        )


class BillingOverviewResponse(BaseModel):
    """Response for the monthly partner billing overview."""
    billing_period: BillingPeriodResponse
    partners: List[PartnerBillingRowResponse]
    total_count: int
    filters_applied: dict


class RevenueResponse(BaseModel):
    """Invoice revenue of a billing month."""
    billing_period: BillingPeriodResponse
    service_type: Optional[str] = None
    total: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "billing_period": {
                    "start": "2024-03-01T00:00:00Z",
                    "end": "2024-03-31T23:59:59.999000Z"
                },
                "service_type": "moving",
                "total": "1308.90"
            }
        }


# ============================================================================
# Cancellation Models
# ============================================================================

class RejectCancellationRequest(BaseModel):
    """Request to reject cancellation requests of a partner's leads."""
    lead_ids: List[str] = Field(
        ...,
        min_length=1,
        description="Lead ids whose cancellation request is rejected"
    )
    reason: Optional[str] = Field(None, description="Reason sent to the partner")

    class Config:
        json_schema_extra = {
            "example": {
                "lead_ids": ["65f1c2a9e4b0a1b2c3d4e5b3"],
                "reason": "Lead was contacted successfully"
            }
        }


class RejectCancellationResponse(BaseModel):
    """Outcome per lead of a bulk cancellation rejection."""
    success: bool
    rejected: List[str]
    failed: Dict[str, str]
