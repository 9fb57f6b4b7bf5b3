from .subscription_schemas import (
    CancelSubscriptionRequest,
    ConfirmPaymentRequest,
    CreatePackageRequest,
    CreateSubscriptionRequest,
    ExtendSubscriptionRequest,
    FreeTrialRequest,
    JobRunResponse,
    JobStatusResponse,
    SubscriptionResponse,
)

__all__ = [
    "CancelSubscriptionRequest",
    "ConfirmPaymentRequest",
    "CreatePackageRequest",
    "CreateSubscriptionRequest",
    "ExtendSubscriptionRequest",
    "FreeTrialRequest",
    "JobRunResponse",
    "JobStatusResponse",
    "SubscriptionResponse",
]
