# 📄 File: app/shared/utils/__init__.py

# 🧭 Purpose (Layman Explanation):
# Collects the small helpers the rest of the app leans on: structured logs and the
# calendar maths that decides when a subscription ends.

# 🧪 Purpose (Technical Summary):
# Initializes the utilities package and re-exports the logging and date helpers
# used across the subscription engine.

# 🔗 Dependencies:
# - logging: Structured logging utilities (python-json-logger)
# - dates: Calendar arithmetic and day counting

# 🔄 Connected Modules / Calls From:
# Used by: domain services, repositories, scheduler, API middleware

"""
Shared Utilities Package

- Structured logging with JSON formatting and request/job context
- Calendar arithmetic for subscription periods
"""

from .dates import add_duration, add_months, add_years, days_remaining, ensure_utc
from .logging import get_logger, log_context, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "log_context",
    "add_duration",
    "add_months",
    "add_years",
    "days_remaining",
    "ensure_utc",
]
