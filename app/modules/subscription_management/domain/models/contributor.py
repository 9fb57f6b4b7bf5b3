# 📄 File: app/modules/subscription_management/domain/models/contributor.py
# 🧭 Purpose (Layman Explanation):
# The part of a contributor's record that says which plan they are on right now and
# how much they are allowed to use, kept up to date whenever their subscription changes.
# 🧪 Purpose (Technical Summary):
# Entitlement Mirror domain model: current subscription reference, append-only history,
# simplified subscription status, tier, account status and denormalized usage limits.
# 🔗 Dependencies:
# pydantic, enum, entitlements.py
# 🔄 Connected Modules / Calls From:
# lifecycle_service.py (sole writer), contributor repository, API schemas

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.modules.subscription_management.domain.models.entitlements import (
    UsageLimits,
    free_tier_limits,
)


class ContributorStatus(str, Enum):
    """Account status of a contributor"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    SUSPENDED = "suspended"
    TRIAL = "trial"


class SubscriptionTier(str, Enum):
    """Tier currently granted to a contributor"""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class ContributorSubscriptionStatus(str, Enum):
    """Simplified view of the contributor's current subscription"""
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    PENDING = "pending"
    TRIAL = "trial"


class Contributor(BaseModel):
    """
    Billable entity whose entitlements mirror its active subscription.

    Only the lifecycle engine writes ``current_subscription_id``,
    ``subscription_status``, ``subscription_tier``, ``status`` and
    ``usage_limits``.
    """

    model_config = ConfigDict(from_attributes=True)

    contributor_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    email: str

    status: ContributorStatus = ContributorStatus.PENDING
    current_subscription_id: Optional[str] = None
    subscription_history: List[str] = Field(default_factory=list)
    subscription_status: Optional[ContributorSubscriptionStatus] = None
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    trial_ends_at: Optional[datetime] = None

    billing_info: Optional[Dict[str, Any]] = None
    usage_limits: UsageLimits = Field(default_factory=free_tier_limits)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
