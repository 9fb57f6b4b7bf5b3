# 📄 File: app/modules/subscription_management/domain/models/package.py
# 🧭 Purpose (Layman Explanation):
# Describes a pricing plan: how long it lasts, what it costs, and how much of each resource
# (users, activities, donations...) a contributor on that plan may use.
# 🧪 Purpose (Technical Summary):
# Plan Catalog domain model with validation of duration, usage ceilings (int >= 0 or the
# "unlimited" sentinel), free-trial length, discount and explicit tier.
# 🔗 Dependencies:
# pydantic, decimal, datetime, enum
# 🔄 Connected Modules / Calls From:
# package_service.py, lifecycle_service.py, entitlements.py, package repository

import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNLIMITED = "unlimited"
LEGACY_UNLIMITED = "infinite"

Ceiling = Union[int, Literal["unlimited"]]

# Usage ceilings carried by every package, in display order
CEILING_FIELDS = (
    "max_users",
    "max_following",
    "max_activities",
    "max_audiences",
    "max_donations",
    "max_pledges",
    "max_reports",
    "max_beneficiaries",
)


class DurationUnit(str, Enum):
    """Unit of a package's billing period"""
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class PackageTier(str, Enum):
    """Entitlement tier granted by a package"""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


def coerce_ceiling(value) -> Ceiling:
    """
    Normalise a usage ceiling.

    Accepts non-negative integers, numeric strings, "unlimited" and the legacy
    spelling "infinite".

    Raises:
        ValueError: Negative, fractional or unrecognised value
    """
    if isinstance(value, bool):
        raise ValueError("Ceiling must be a number >= 0 or 'unlimited'")

    if isinstance(value, str):
        text = value.strip().lower()
        if text in (UNLIMITED, LEGACY_UNLIMITED):
            return UNLIMITED
        try:
            value = float(text)
        except ValueError:
            raise ValueError("Ceiling must be a number >= 0 or 'unlimited'")

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("Ceiling must be a whole number")
        value = int(value)

    if not isinstance(value, int) or value < 0:
        raise ValueError("Ceiling must be a number >= 0 or 'unlimited'")

    return value


class PackageFeature(BaseModel):
    """Marketing feature line shown with a package"""
    name: str = Field(..., max_length=200)
    value: Optional[str] = None
    enable: bool = False


class Discount(BaseModel):
    """Percentage discount, optionally bounded in time"""
    percentage: Decimal = Field(..., ge=0, le=100)
    valid_until: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        if self.valid_until is None:
            return True
        valid_until = self.valid_until
        if valid_until.tzinfo is None:
            valid_until = valid_until.replace(tzinfo=timezone.utc)
        return valid_until > now


class Package(BaseModel):
    """
    Pricing plan definition.

    A package is read-only to the lifecycle engine; it is created and
    deactivated through PackageService.
    """

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    package_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(default="", max_length=1000)
    price: Decimal = Field(default=Decimal("0"), ge=0)

    duration: int = Field(default=1, ge=1)
    duration_unit: DurationUnit = DurationUnit.MONTHS
    tier: PackageTier = PackageTier.BASIC

    # Usage ceilings
    max_users: Ceiling = 0
    max_following: Ceiling = 0
    max_activities: Ceiling = 0
    max_audiences: Ceiling = 0
    max_donations: Ceiling = 0
    max_pledges: Ceiling = 0
    max_reports: Ceiling = 0
    max_beneficiaries: Ceiling = 0

    # Optional platform quotas mirrored onto the contributor
    max_projects: Optional[Ceiling] = None
    storage_limit: Optional[Ceiling] = None
    api_calls_limit: Optional[Ceiling] = None

    features: List[PackageFeature] = Field(default_factory=list)

    is_free: bool = False
    is_popular: bool = False
    is_active: bool = True
    auto_renewal: bool = False

    max_free_trial_duration: Optional[int] = Field(default=None, ge=1, le=365)
    discount: Optional[Discount] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Package name must contain at least 3 characters")
        return v

    @field_validator(*CEILING_FIELDS, mode="before")
    @classmethod
    def validate_ceiling(cls, v):
        return coerce_ceiling(v)

    @field_validator("max_projects", "storage_limit", "api_calls_limit", mode="before")
    @classmethod
    def validate_optional_ceiling(cls, v):
        if v is None:
            return None
        return coerce_ceiling(v)

    # Business Logic Methods

    def ceilings(self) -> dict:
        """Usage ceilings keyed by resource name, "unlimited" kept as a sentinel."""
        return {name: getattr(self, name) for name in CEILING_FIELDS}

    def effective_price(self, now: datetime) -> Decimal:
        """Price after an active discount, rounded to two decimals."""
        price = Decimal(self.price)
        if self.discount is not None and self.discount.is_active(now):
            price = price * (Decimal(100) - self.discount.percentage) / Decimal(100)
        return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def offers_free_trial(self) -> bool:
        return self.max_free_trial_duration is not None
