"""
Core utilities package for the subscription engine.
Provides the exception hierarchy and the injectable clock.
"""

from .clock import Clock, FixedClock, SystemClock, get_clock
from .exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    SchedulerError,
    SubscriptionEngineException,
    TransactionError,
    ValidationError,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "FixedClock",
    "get_clock",

    # Exceptions
    "SubscriptionEngineException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "SchedulerError",
    "DatabaseError",
    "TransactionError",
]
