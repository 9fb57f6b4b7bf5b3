from .subscription_commands import (
    CancelSubscriptionCommand,
    ConfirmPaymentCommand,
    CreateSubscriptionCommand,
    ExtendSubscriptionCommand,
    FailPaymentCommand,
    StartFreeTrialCommand,
)

__all__ = [
    "CancelSubscriptionCommand",
    "ConfirmPaymentCommand",
    "CreateSubscriptionCommand",
    "ExtendSubscriptionCommand",
    "FailPaymentCommand",
    "StartFreeTrialCommand",
]
