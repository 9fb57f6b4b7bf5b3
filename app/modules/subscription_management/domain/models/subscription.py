# 📄 File: app/modules/subscription_management/domain/models/subscription.py
# 🧭 Purpose (Layman Explanation):
# Describes one subscription: which contributor bought which plan, from when to when,
# whether it has been paid, and where it stands (waiting, running, finished, cancelled).
# 🧪 Purpose (Technical Summary):
# Subscription domain model with status and payment enums, the legal state machine,
# derived fields (next billing date, days remaining) and near-expiry thresholds.
# 🔗 Dependencies:
# pydantic, datetime, decimal, enum, app.shared.utils.dates
# 🔄 Connected Modules / Calls From:
# lifecycle_service.py, history_service.py, subscription repository, API schemas

import secrets
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.shared.utils.dates import days_remaining, ensure_utc

EXPIRING_SOON_DAYS = 7


class SubscriptionStatus(str, Enum):
    """Subscription status enumeration"""
    PENDING = "pending"        # Waiting for payment
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Accepted payment methods"""
    CARD = "card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CRYPTO = "crypto"


class ExpiryThreshold(int, Enum):
    """Days-remaining values that trigger an expiration reminder"""
    WEEK = 7
    THREE_DAYS = 3
    ONE_DAY = 1

    @property
    def label(self) -> str:
        return self.name.lower()


DEFAULT_THRESHOLDS = tuple(t.value for t in ExpiryThreshold)


def threshold_label(days: int) -> str:
    """Notification label for a threshold: week, three_days, one_day or "<n>_days"."""
    try:
        return ExpiryThreshold(days).label
    except ValueError:
        return f"{days}_days"


# Terminal states never transition again
ALLOWED_TRANSITIONS = {
    SubscriptionStatus.PENDING: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.EXPIRED: set(),
    SubscriptionStatus.CANCELLED: set(),
    SubscriptionStatus.SUSPENDED: set(),
}


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return SubscriptionStatus(target) in ALLOWED_TRANSITIONS[SubscriptionStatus(current)]


def generate_transaction_reference(now: Optional[datetime] = None) -> str:
    """Unique reference of the form ``TXN_<epoch ms>_<9 random chars>``."""
    millis = int((now.timestamp() if now else time.time()) * 1000)
    return f"TXN_{millis}_{secrets.token_hex(5)[:9]}"


def compute_next_billing_date(
    status: SubscriptionStatus, auto_renewal: bool, end_date: datetime
) -> Optional[datetime]:
    if auto_renewal and status == SubscriptionStatus.ACTIVE:
        return end_date
    return None


class Subscription(BaseModel):
    """
    Time-bounded binding of a contributor to a package.

    Lifecycle: PENDING -> ACTIVE -> EXPIRED | CANCELLED. A PENDING subscription
    may also be cancelled. EXPIRED, CANCELLED and SUSPENDED are terminal.
    """

    model_config = ConfigDict(from_attributes=True)

    subscription_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    contributor_id: str
    package_id: str

    start_date: datetime
    end_date: datetime

    status: SubscriptionStatus = SubscriptionStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None

    amount: Decimal = Decimal("0")
    currency: str = "XOF"

    auto_renewal: bool = False
    renewal_attempts: int = 0
    last_renewal_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None

    canceled_at: Optional[datetime] = None
    cancelation_reason: Optional[str] = None

    is_free_trial: bool = False
    last_notified_threshold: Optional[int] = None

    usage_stats: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def validate_period(self) -> "Subscription":
        if ensure_utc(self.end_date) <= ensure_utc(self.start_date):
            raise ValueError("Subscription end date must be after start date")
        return self

    # Derived fields

    def days_remaining(self, now: datetime) -> int:
        return days_remaining(self.end_date, now)

    def is_active(self, now: datetime) -> bool:
        """Usable right now: ACTIVE, not past its end date, and paid or a free trial."""
        return (
            self.status == SubscriptionStatus.ACTIVE
            and ensure_utc(self.end_date) > ensure_utc(now)
            and (self.payment_status == PaymentStatus.PAID or self.is_free_trial)
        )

    def is_expiring_soon(self, now: datetime) -> bool:
        return self.is_active(now) and self.days_remaining(now) <= EXPIRING_SOON_DAYS

    def due_threshold(self, now: datetime, thresholds=DEFAULT_THRESHOLDS) -> Optional[int]:
        """
        Reminder threshold to fire now, if any.

        A threshold is due when days remaining equals it exactly and it is
        smaller than the last threshold already notified for this period.
        """
        remaining = self.days_remaining(now)
        if remaining not in thresholds:
            return None

        if self.last_notified_threshold is not None and remaining >= self.last_notified_threshold:
            return None
        return remaining
