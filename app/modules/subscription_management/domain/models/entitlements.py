# 📄 File: app/modules/subscription_management/domain/models/entitlements.py
# 🧭 Purpose (Layman Explanation):
# Works out the usage limits a contributor gets from a plan, or the small free allowance
# they fall back to when they have no running subscription.
# 🧪 Purpose (Technical Summary):
# Pure, total derivation of the contributor usage-limits mirror from a package
# (ceilings copied verbatim, "unlimited" kept as a sentinel) or the fixed free tier.
# 🔗 Dependencies:
# pydantic
# 🔄 Connected Modules / Calls From:
# lifecycle_service.py, contributor.py, contributor repository

from typing import Dict, Optional, Union

from pydantic import BaseModel, Field

Limit = Union[int, str]

# Free tier applied when no subscription is active
FREE_TIER_MAX_PROJECTS = 1
FREE_TIER_MAX_USERS = 1
FREE_TIER_STORAGE_LIMIT = 1  # GB
FREE_TIER_API_CALLS_LIMIT = 100

# Platform quotas granted by a paid package that does not set them
PACKAGE_DEFAULT_MAX_PROJECTS = 10
PACKAGE_DEFAULT_STORAGE_LIMIT = 10
PACKAGE_DEFAULT_API_CALLS_LIMIT = 1000


class CurrentUsage(BaseModel):
    """Live usage counters"""
    projects: int = 0
    users: int = 0
    storage_used: int = 0
    api_calls_used: int = 0


class UsageLimits(BaseModel):
    """Denormalized copy of the active package's ceilings plus live usage"""
    max_projects: Limit = FREE_TIER_MAX_PROJECTS
    max_users: Limit = FREE_TIER_MAX_USERS
    storage_limit: Limit = FREE_TIER_STORAGE_LIMIT
    api_calls_limit: Limit = FREE_TIER_API_CALLS_LIMIT
    resource_limits: Dict[str, Limit] = Field(default_factory=dict)
    current_usage: CurrentUsage = Field(default_factory=CurrentUsage)


def free_tier_limits() -> UsageLimits:
    """Free-tier ceilings with all usage counters zeroed."""
    return UsageLimits()


def _or_default(value, default):
    return default if value is None else value


def derive_usage_limits(package=None, current_usage: Optional[CurrentUsage] = None) -> UsageLimits:
    """
    Derive a contributor's usage limits.

    Args:
        package: Package backing the active subscription, or None for the free tier
        current_usage: Usage counters to carry over; zeroed when omitted

    Returns:
        UsageLimits: Never raises; any package without ceilings yields the free tier
    """
    if package is None:
        return free_tier_limits()

    usage = current_usage.model_copy() if current_usage is not None else CurrentUsage()
    ceilings_fn = getattr(package, "ceilings", None)
    ceilings = dict(ceilings_fn()) if callable(ceilings_fn) else {}
    if not ceilings:
        return free_tier_limits()

    return UsageLimits(
        max_projects=_or_default(getattr(package, "max_projects", None), PACKAGE_DEFAULT_MAX_PROJECTS),
        max_users=ceilings.get("max_users", FREE_TIER_MAX_USERS),
        storage_limit=_or_default(getattr(package, "storage_limit", None), PACKAGE_DEFAULT_STORAGE_LIMIT),
        api_calls_limit=_or_default(
            getattr(package, "api_calls_limit", None), PACKAGE_DEFAULT_API_CALLS_LIMIT
        ),
        resource_limits=ceilings,
        current_usage=usage,
    )
