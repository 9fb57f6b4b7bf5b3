# 📄 File: app/modules/subscription_management/presentation/api/schemas/subscription_schemas.py
#
# 🧭 Purpose (Layman Explanation):
# The shapes of the messages the subscription endpoints accept and send back, so every request
# is checked before it reaches the business logic and every answer looks the same.
#
# 🧪 Purpose (Technical Summary):
# Pydantic request/response schemas for the subscription and scheduler endpoints. Request
# schemas convert to application commands; SubscriptionResponse adds fields derived at
# response time (days remaining, usable-now flag).
#
# 🔗 Dependencies:
# - pydantic for schema validation and serialization
# - application.commands (request conversion)
# - subscription domain model
#
# 🔄 Connected Modules / Calls From:
# - presentation.api.v1.subscriptions
# - presentation.api.v1.packages
# - app.api.v1.scheduler

"""
Subscription API Schemas

Request Schemas:
- CreateSubscriptionRequest: Subscribe a contributor to a package
- FreeTrialRequest: Start a free trial
- ConfirmPaymentRequest: Payment gateway confirmation
- CancelSubscriptionRequest: Cancellation with optional reason
- ExtendSubscriptionRequest: Extend an active subscription in place
- CreatePackageRequest: Add a plan to the catalog

Response Schemas:
- SubscriptionResponse: Subscription with derived fields
- JobStatusResponse / JobRunResponse: Scheduler job state and manual runs
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from app.modules.subscription_management.application.commands.subscription_commands import (
    CancelSubscriptionCommand,
    ConfirmPaymentCommand,
    CreateSubscriptionCommand,
    ExtendSubscriptionCommand,
    FailPaymentCommand,
    StartFreeTrialCommand,
)
from app.modules.subscription_management.domain.models.package import (
    Discount,
    DurationUnit,
    PackageFeature,
    PackageTier,
)
from app.modules.subscription_management.domain.models.subscription import (
    PaymentMethod,
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
)

# Ceilings arrive as ints, numeric strings or "unlimited"/"infinite"; the domain coerces them
CeilingInput = Union[int, str]


# =========================================================================
# REQUESTS
# =========================================================================

class CreateSubscriptionRequest(BaseModel):
    contributor_id: str = Field(..., description="Contributor subscribing")
    package_id: str = Field(..., description="Package to subscribe to")
    payment_method: Optional[PaymentMethod] = None
    auto_renewal: bool = False
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    billing_info: Optional[Dict[str, Any]] = None

    def to_command(self) -> CreateSubscriptionCommand:
        return CreateSubscriptionCommand(**self.model_dump())


class FreeTrialRequest(BaseModel):
    contributor_id: str
    package_id: str

    def to_command(self) -> StartFreeTrialCommand:
        return StartFreeTrialCommand(**self.model_dump())


class ConfirmPaymentRequest(BaseModel):
    transaction_id: Optional[str] = Field(
        default=None, max_length=100, description="Gateway reference; generated when omitted"
    )
    payment_method: Optional[PaymentMethod] = None

    def to_command(self, subscription_id: str) -> ConfirmPaymentCommand:
        return ConfirmPaymentCommand(subscription_id=subscription_id, **self.model_dump())


class CancelSubscriptionRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)

    def to_command(self, subscription_id: str) -> CancelSubscriptionCommand:
        return CancelSubscriptionCommand(subscription_id=subscription_id, reason=self.reason)


class FailPaymentRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500, description="Gateway decline reason")

    def to_command(self, subscription_id: str) -> FailPaymentCommand:
        return FailPaymentCommand(subscription_id=subscription_id, reason=self.reason)


class ExtendSubscriptionRequest(BaseModel):
    periods: int = Field(default=1, ge=1, le=120, description="Package durations to add")

    def to_command(self, subscription_id: str) -> ExtendSubscriptionCommand:
        return ExtendSubscriptionCommand(subscription_id=subscription_id, periods=self.periods)


class CreatePackageRequest(BaseModel):
    """Validation of ceilings and ranges happens in the Package domain model."""

    name: str
    description: Optional[str] = None
    price: Decimal
    duration: int
    duration_unit: DurationUnit = DurationUnit.MONTHS
    tier: PackageTier = PackageTier.BASIC
    max_users: CeilingInput = 0
    max_following: CeilingInput = 0
    max_activities: CeilingInput = 0
    max_audiences: CeilingInput = 0
    max_donations: CeilingInput = 0
    max_pledges: CeilingInput = 0
    max_reports: CeilingInput = 0
    max_beneficiaries: CeilingInput = 0
    max_projects: Optional[CeilingInput] = None
    storage_limit: Optional[CeilingInput] = None
    api_calls_limit: Optional[CeilingInput] = None
    features: List[PackageFeature] = Field(default_factory=list)
    is_free: bool = False
    is_popular: bool = False
    auto_renewal: bool = False
    max_free_trial_duration: Optional[int] = None
    discount: Optional[Discount] = None


# =========================================================================
# RESPONSES
# =========================================================================

class SubscriptionResponse(BaseModel):
    subscription_id: str
    contributor_id: str
    package_id: str
    start_date: datetime
    end_date: datetime
    status: SubscriptionStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    amount: Decimal
    currency: str
    auto_renewal: bool
    renewal_attempts: int
    last_renewal_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    cancelation_reason: Optional[str] = None
    is_free_trial: bool
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    days_remaining: int
    is_active: bool

    @classmethod
    def from_subscription(cls, subscription: Subscription, now: datetime) -> "SubscriptionResponse":
        return cls(
            **subscription.model_dump(exclude={"usage_stats", "last_notified_threshold"}),
            days_remaining=subscription.days_remaining(now),
            is_active=subscription.is_active(now),
        )


class JobStatusResponse(BaseModel):
    name: str
    cadence: str
    running: bool
    run_count: int
    last_run_at: Optional[str] = None
    next_run_at: Optional[str] = None
    last_result: Optional[Any] = None
    last_error: Optional[str] = None


class JobRunResponse(BaseModel):
    job: str
    succeeded: bool
    result: Optional[Any] = None
    error: Optional[str] = None
