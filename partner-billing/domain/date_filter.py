"""
Domain: On-screen date filter for billing buckets.

Modes (exactly one active at a time):
- all:    no filtering
- single: one calendar day, 00:00:00.000 - 23:59:59.999
- range:  from-day 00:00:00.000 through to-day 23:59:59.999, inclusive
- week:   Sunday - Saturday containing the reference day
- month:  calendar month containing the reference day
- year:   calendar year containing the reference day

Each mode reads only its own parameters. Filtering narrows the unpaid and
invoiced buckets by the items' effective date; the paid bucket is never
filtered. Nothing here is persisted.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .assignment import AssignmentItem
from .billing_period import END_OF_DAY
from .reconciliation import BillingBuckets


class DateFilterType(str, Enum):
    ALL = "all"
    SINGLE = "single"
    RANGE = "range"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def _start_of(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _end_of(day: date) -> datetime:
    return _start_of(day) + END_OF_DAY


@dataclass(frozen=True, slots=True)
class DateFilter:
    """
    Operator-chosen date filter.

    single, week, month and year use `day` as their reference date;
    range uses `from_day` and `to_day`.
    """

    type: DateFilterType = DateFilterType.ALL
    day: Optional[date] = None
    from_day: Optional[date] = None
    to_day: Optional[date] = None

    def bounds(self) -> Optional[Tuple[datetime, datetime]]:
        """
        Resolve the inclusive instant range for the active mode.

        Returns None for 'all'. Raises ValueError when the active mode is missing
        its parameters or the range is inverted.
        """

        if self.type is DateFilterType.ALL:
            return None

        if self.type is DateFilterType.RANGE:
            if self.from_day is None or self.to_day is None:
                raise ValueError("range filter requires from_day and to_day")
            if self.to_day < self.from_day:
                raise ValueError("range filter to_day must be >= from_day")
            return _start_of(self.from_day), _end_of(self.to_day)

        if self.day is None:
            raise ValueError(f"{self.type.value} filter requires day")

        if self.type is DateFilterType.SINGLE:
            return _start_of(self.day), _end_of(self.day)

        if self.type is DateFilterType.WEEK:
            # date.weekday() is Monday=0; weeks here start on Sunday.
            sunday = self.day - timedelta(days=(self.day.weekday() + 1) % 7)
            return _start_of(sunday), _end_of(sunday + timedelta(days=6))

        if self.type is DateFilterType.MONTH:
            last_day = calendar.monthrange(self.day.year, self.day.month)[1]
            return (
                _start_of(self.day.replace(day=1)),
                _end_of(self.day.replace(day=last_day)),
            )

        return _start_of(date(self.day.year, 1, 1)), _end_of(date(self.day.year, 12, 31))


def apply_date_filter(items: Sequence[AssignmentItem], date_filter: DateFilter) -> List[AssignmentItem]:
    """Keep items whose effective date lies inside the filter range. Order is preserved."""

    bounds = date_filter.bounds()
    if bounds is None:
        return list(items)
    start, end = bounds
    return [item for item in items if start <= item.effective_date() <= end]


def filter_buckets(buckets: BillingBuckets, date_filter: DateFilter) -> BillingBuckets:
    """Narrow the unpaid and invoiced buckets; paid and cancellation-requested stay as they are."""

    return replace(
        buckets,
        unpaid=tuple(apply_date_filter(buckets.unpaid, date_filter)),
        invoiced=tuple(apply_date_filter(buckets.invoiced, date_filter)),
    )
