"""
Calendar helpers for month-indexed lease timelines.

All month arithmetic is anchored to the commencement day-of-month; when a
target month does not contain that day, its last day is used instead.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[date, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """Parse YYYY-MM-DD (or an ISO datetime) to date; None when blank or invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00").split("T")[0]).date()
    except ValueError:
        return None


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months_anchored(anchor: date, months: int) -> date:
    """anchor + months, clamping the day to the end of the target month."""
    total = anchor.year * 12 + (anchor.month - 1) + months
    year, month_zero = divmod(total, 12)
    month = month_zero + 1
    return date(year, month, min(anchor.day, last_day_of_month(year, month)))


def calendar_months_between(start: date, end: date) -> int:
    """Whole anniversary months from start to end (negative when end < start)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and add_months_anchored(start, months) > end:
        months -= 1
    elif months < 0 and add_months_anchored(start, months) < end:
        months += 1
    return months


def term_months_from_dates(commencement: date, expiration: date) -> Optional[int]:
    """
    Whole lease months between commencement and an inclusive expiration.

    The count is the largest n with commencement + n months <= expiration + 1 day,
    so 2024-01-01 .. 2026-12-31 is 36 months and 2024-01-15 .. 2027-01-14 is 36.
    Returns None when expiration is not after commencement.
    """
    if expiration <= commencement:
        return None
    return calendar_months_between(commencement, expiration + timedelta(days=1))


def expiration_for_term(commencement: date, term_months: int) -> date:
    """Inclusive expiration: commencement + term months, minus one day."""
    return add_months_anchored(commencement, term_months) - timedelta(days=1)


def month_bounds(commencement: date, month_index: int, expiration: Optional[date] = None) -> tuple[date, date]:
    """(start, end) of lease month `month_index`; end is clamped to expiration."""
    start = add_months_anchored(commencement, month_index)
    end = add_months_anchored(commencement, month_index + 1) - timedelta(days=1)
    if expiration is not None and end > expiration:
        end = expiration
    return start, end


def lease_year_index(commencement: date, on: date) -> int:
    """0-based lease year containing `on` (dates before commencement map to 0)."""
    return max(0, calendar_months_between(commencement, on) // 12)


def month_index_for_date(commencement: date, on: date) -> int:
    """0-based lease month containing `on` (dates before commencement map to 0)."""
    return max(0, calendar_months_between(commencement, on))


def years_between(start: date, end: date, days_per_year: float = 365.25) -> float:
    """Day-count years, for display only."""
    return (end - start).days / days_per_year
