# 📄 File: app/shared/utils/dates.py
#
# 🧭 Purpose (Layman Explanation):
# Calendar helpers that work out when a subscription ends ("one month after January 31st")
# and how many days are left before it runs out.
#
# 🧪 Purpose (Technical Summary):
# Calendar-aware duration arithmetic (days/months/years with end-of-month overflow),
# day-count helpers and UTC normalisation shared by lifecycle and scheduling code.
#
# 🔗 Dependencies:
# - calendar, datetime, math (standard library)
#
# 🔄 Connected Modules / Calls From:
# - Subscription lifecycle service (end date computation, extension)
# - Subscription domain model (days remaining, expiring soon)
# - Near-expiry scan (threshold detection)

import calendar
import math
from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 24 * 60 * 60


def ensure_utc(value: datetime) -> datetime:
    """
    Return ``value`` as an aware UTC datetime.

    Naive datetimes (as returned by some database drivers) are assumed to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(start: datetime, months: int) -> datetime:
    """
    Add calendar months keeping the day of month, spilling surplus days forward.

    When the target month is shorter than the start day, the extra days overflow
    into the following month: 2024-01-31 + 1 month is 2024-03-02 (February 2024
    has 29 days, so "February 31st" lands two days into March). Time of day and
    tzinfo are preserved.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1

    days_in_month = calendar.monthrange(year, month)[1]
    overflow = start.day - days_in_month
    if overflow <= 0:
        return start.replace(year=year, month=month)

    return start.replace(year=year, month=month, day=days_in_month) + timedelta(days=overflow)


def add_years(start: datetime, years: int) -> datetime:
    """Add calendar years; February 29th overflows to March 1st in non-leap years."""
    return add_months(start, years * 12)


def add_duration(start: datetime, duration: int, unit: str) -> datetime:
    """
    Compute the end of a period of ``duration`` ``unit`` starting at ``start``.

    Args:
        start: Period start
        duration: Number of units (>= 1)
        unit: One of "days", "months", "years"

    Returns:
        datetime: Period end

    Raises:
        ValueError: Unknown unit or non-positive duration
    """
    if duration < 1:
        raise ValueError(f"Duration must be at least 1, got {duration}")

    unit = getattr(unit, "value", unit)
    if unit == "days":
        return start + timedelta(days=duration)
    if unit == "months":
        return add_months(start, duration)
    if unit == "years":
        return add_years(start, duration)

    raise ValueError(f"Unknown duration unit: {unit}")


def days_remaining(end: datetime, now: datetime) -> int:
    """Whole days left until ``end``, rounded up; 0 once ``end`` has passed."""
    end = ensure_utc(end)
    now = ensure_utc(now)
    if end <= now:
        return 0
    return math.ceil((end - now).total_seconds() / SECONDS_PER_DAY)
