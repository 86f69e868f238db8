"""
Domain: Assignment items and the assignment flattener.

An assignment item is a flattened (lead, partner-assignment) pair and is the
unit of billing classification.

Flattening rules:
- one item per assignment of the target partner (no dedup by lead id: a lead
  re-assigned to the same partner yields one item per billable assignment),
- status must be accepted or cancellationRequested,
- acceptedAt (falling back to assignedAt) must lie inside the billing period,
- an assignment with neither timestamp is treated as in period (fails open),
- output order is lead order x assignment order; nothing is sorted.

This module contains only pure functions: no I/O, no logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from .billing_period import BillingPeriod
from .invoice import FALLBACK_LEAD_PRICE
from .lead import AssignmentStatus, Lead, PartnerAssignment


@dataclass(frozen=True, slots=True)
class AssignmentItem:
    lead: Lead
    assignment: PartnerAssignment

    @property
    def lead_id(self) -> str:
        return self.lead.lead_id

    @property
    def is_cancellation_requested(self) -> bool:
        return self.assignment.status is AssignmentStatus.CANCELLATION_REQUESTED

    @property
    def period_timestamp_missing(self) -> bool:
        """True when period membership could not be checked (no acceptedAt/assignedAt)."""

        return self.assignment.period_timestamp() is None

    def billable_amount(self) -> Decimal:
        """Recorded lead price, or the fallback unit price when none was recorded."""

        if self.assignment.lead_price is None:
            return FALLBACK_LEAD_PRICE
        return self.assignment.lead_price

    def effective_date(self) -> datetime:
        """Date used by on-screen filters: acceptedAt, else the lead's creation time."""

        if self.assignment.accepted_at is not None:
            return self.assignment.accepted_at
        return self.lead.created_at


def _in_period(assignment: PartnerAssignment, period: BillingPeriod) -> bool:
    timestamp = assignment.period_timestamp()
    if timestamp is None:
        return True
    return period.contains(timestamp)


def flatten_assignments(
    leads: Iterable[Lead],
    partner_id: str,
    period: BillingPeriod,
) -> List[AssignmentItem]:
    """
    Flatten leads into billable assignment items for one partner and period.

    Example:
        A lead with two assignments to the same partner, one cancelled and one
        accepted inside the period, produces exactly one item.
    """

    items: List[AssignmentItem] = []
    for lead in leads:
        for assignment in lead.assignments_for(partner_id):
            if not assignment.status.is_billable:
                continue
            if not _in_period(assignment, period):
                continue
            items.append(AssignmentItem(lead=lead, assignment=assignment))
    return items
