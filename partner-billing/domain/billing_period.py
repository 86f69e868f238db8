"""
Domain: Billing period.

A billing period is a calendar month expressed as an inclusive range of UTC
instants:

    [first-of-month 00:00:00.000, last-of-month 23:59:59.999]

Leads and invoices are scoped to a partner and one billing period. The same
range is sent to the store when listing invoices and embedded in generated
invoices as `billingPeriod`.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .time import require_utc_timestamp

# Last representable millisecond of a day.
END_OF_DAY = timedelta(hours=23, minutes=59, seconds=59, milliseconds=999)


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """Inclusive instant range used to scope leads and invoices."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("start", self.start)
        require_utc_timestamp("end", self.end)
        if self.end < self.start:
            raise ValueError("end must be >= start")

    @staticmethod
    def for_month(month: int, year: int) -> "BillingPeriod":
        """
        Build the billing period for a calendar month.

        Raises ValueError when month is outside 1-12.
        """

        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")

        last_day = calendar.monthrange(year, month)[1]
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = datetime(year, month, last_day, tzinfo=timezone.utc) + END_OF_DAY
        return BillingPeriod(start=start, end=end)

    @property
    def month(self) -> int:
        return self.start.month

    @property
    def year(self) -> int:
        return self.start.year

    def contains(self, value: datetime) -> bool:
        """True iff value lies inside the inclusive range."""

        return self.start <= value <= self.end

    def key(self) -> str:
        """Stable string identifier of the range, used to key loads."""

        return f"{self.start.isoformat()}..{self.end.isoformat()}"
