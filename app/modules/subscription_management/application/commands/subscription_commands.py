# 📄 File: app/modules/subscription_management/application/commands/subscription_commands.py
#
# 🧭 Purpose (Layman Explanation):
# The "orders" the app accepts for subscriptions: start one, confirm it was paid, cancel it,
# extend it, or begin a free trial. Each order carries exactly the information it needs.
#
# 🧪 Purpose (Technical Summary):
# CQRS command definitions for lifecycle write operations with field-level validation.
#
# 🔗 Dependencies:
# - pydantic for command validation and serialization
# - subscription domain enums
#
# 🔄 Connected Modules / Calls From:
# - application.handlers.command_handlers
# - presentation.api.v1.subscriptions (request conversion)

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.modules.subscription_management.domain.models.subscription import PaymentMethod


class CreateSubscriptionCommand(BaseModel):
    """Subscribe a contributor to a package; the subscription waits for payment."""

    contributor_id: str = Field(..., description="Buyer")
    package_id: str = Field(..., description="Plan to subscribe to")
    payment_method: Optional[PaymentMethod] = Field(default=None)
    auto_renewal: bool = Field(default=False)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    billing_info: Optional[Dict[str, Any]] = Field(
        default=None, description="Stored on the contributor when supplied"
    )


class ConfirmPaymentCommand(BaseModel):
    """Payment gateway callback contract."""

    subscription_id: str
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    payment_method: Optional[PaymentMethod] = None


class FailPaymentCommand(BaseModel):
    subscription_id: str
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelSubscriptionCommand(BaseModel):
    subscription_id: str
    reason: Optional[str] = Field(default=None, max_length=500)


class ExtendSubscriptionCommand(BaseModel):
    subscription_id: str
    periods: int = Field(default=1, ge=1, le=120)


class StartFreeTrialCommand(BaseModel):
    contributor_id: str
    package_id: str
