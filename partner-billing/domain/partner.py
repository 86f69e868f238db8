"""
Domain: Partner (service company) accounts.

Partners receive leads and are invoiced for the ones they accept.
Only active and suspended partners are included in billing periods.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp


class PartnerStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REJECTED = "rejected"
    INACTIVE = "inactive"


class PartnerType(str, Enum):
    BASIC = "basic"
    EXCLUSIVE = "exclusive"


BILLABLE_PARTNER_STATUSES = frozenset({PartnerStatus.ACTIVE, PartnerStatus.SUSPENDED})


@dataclass(frozen=True, slots=True)
class Partner:
    """
    Partner company profile.

    Lead prices are recorded per assignment. partner_type selects the default
    lead price in BillingSettings.
    """

    partner_id: str
    company_name: str
    status: PartnerStatus
    partner_type: PartnerType = PartnerType.BASIC

    # Contact person
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None

    approved_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.approved_at is not None:
            require_utc_timestamp("approved_at", self.approved_at)

    def is_billable(self) -> bool:
        """Check if the partner takes part in billing periods."""
        return self.status in BILLABLE_PARTNER_STATUSES
