"""
Domain: Lead entity and its partner assignments.

- A Lead represents a single customer service request (moving, cleaning or
  security) and is uniquely identified by lead_id (the store's `_id`).
- lead_number is the human-readable reference shown to operators (`leadId`).
- A Lead carries every PartnerAssignment it ever had. The same partner may
  appear more than once (re-assigned after a cancellation, re-accepted, ...).
- Only accepted and cancellationRequested assignments are eligible for billing.

Leads and assignments are owned by the external lead-management store; this
module only models what the billing engine reads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .time import require_utc_timestamp


class ServiceType(str, Enum):
    MOVING = "moving"
    CLEANING = "cleaning"
    SECURITY = "security"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLATION_REQUESTED = "cancellationRequested"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_billable(self) -> bool:
        """Only accepted and cancellation-requested assignments can be billed."""

        return self in BILLABLE_STATUSES


BILLABLE_STATUSES = frozenset({AssignmentStatus.ACCEPTED, AssignmentStatus.CANCELLATION_REQUESTED})


@dataclass(frozen=True, slots=True)
class PartnerAssignment:
    """
    One assignment of a lead to a partner.

    lead_price is None when the store recorded no explicit price; billing falls
    back to a fixed unit price in that case (see domain.invoice).
    """

    assignment_id: Optional[str]
    partner_id: str
    status: AssignmentStatus
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    lead_price: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.assigned_at is not None:
            require_utc_timestamp("assigned_at", self.assigned_at)
        if self.accepted_at is not None:
            require_utc_timestamp("accepted_at", self.accepted_at)

    def period_timestamp(self) -> Optional[datetime]:
        """Timestamp deciding billing-period membership: acceptedAt, else assignedAt."""

        return self.accepted_at if self.accepted_at is not None else self.assigned_at


@dataclass(frozen=True, slots=True)
class Lead:
    """Pure domain entity for a Lead as read from the store."""

    lead_id: str
    lead_number: str
    service_type: ServiceType
    created_at: datetime
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    service_data: Mapping[str, Any] = field(default_factory=dict)
    partner_assignments: Tuple[PartnerAssignment, ...] = ()

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    def assignments_for(self, partner_id: str) -> Tuple[PartnerAssignment, ...]:
        """All assignments of this lead to the given partner, in store order."""

        return tuple(a for a in self.partner_assignments if a.partner_id == partner_id)
