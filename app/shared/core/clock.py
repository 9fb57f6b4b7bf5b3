# 📄 File: app/shared/core/clock.py
# 🧭 Purpose (Layman Explanation):
# A single place that tells the app "what time is it", so tests can pretend it is
# any date they like and check how subscriptions behave when they run out.
# 🧪 Purpose (Technical Summary):
# Injectable clock abstraction returning timezone-aware UTC datetimes, with a system
# implementation for production and a manually advanced implementation for tests.
# 🔗 Dependencies:
# datetime
# 🔄 Connected Modules / Calls From:
# Subscription lifecycle service, history service, scheduler, FastAPI dependencies

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Clock frozen at a given instant until explicitly moved.

    Naive datetimes are treated as UTC.
    """

    def __init__(self, current: Optional[datetime] = None):
        self._current = _as_utc(current or datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = _as_utc(current)

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        """Move the clock forward by ``delta`` or by ``timedelta(**kwargs)``."""
        self._current = self._current + (delta or timedelta(**kwargs))
        return self._current


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_default_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency and default clock for services."""
    return _default_clock
