# 📄 File: app/modules/subscription_management/application/handlers/command_handlers.py
# 🧭 Purpose (Layman Explanation):
# Takes each subscription "order" and passes it to the right piece of business logic.
#
# 🧪 Purpose (Technical Summary):
# CQRS command handler delegating lifecycle commands to SubscriptionLifecycleService,
# injected through FastAPI dependencies.
#
# 🔗 Dependencies:
# - application.commands
# - domain.services.lifecycle_service
# - presentation.dependencies (service construction)
#
# 🔄 Connected Modules / Calls From:
# - presentation.api.v1.subscriptions

__all__ = ["SubscriptionCommandHandler"]

from fastapi import Depends

from app.modules.subscription_management.application.commands.subscription_commands import (
    CancelSubscriptionCommand,
    ConfirmPaymentCommand,
    CreateSubscriptionCommand,
    ExtendSubscriptionCommand,
    FailPaymentCommand,
    StartFreeTrialCommand,
)
from app.modules.subscription_management.domain.models.subscription import Subscription
from app.modules.subscription_management.domain.services.lifecycle_service import (
    SubscriptionLifecycleService,
)
from app.modules.subscription_management.presentation.dependencies import get_lifecycle_service


class SubscriptionCommandHandler:
    """Handles lifecycle write commands."""

    def __init__(self, lifecycle_service: SubscriptionLifecycleService = Depends(get_lifecycle_service)):
        self._lifecycle = lifecycle_service

    async def create(self, command: CreateSubscriptionCommand) -> Subscription:
        return await self._lifecycle.create_subscription(
            contributor_id=command.contributor_id,
            package_id=command.package_id,
            payment_method=command.payment_method,
            auto_renewal=command.auto_renewal,
            billing_info=command.billing_info,
            currency=command.currency,
        )

    async def start_free_trial(self, command: StartFreeTrialCommand) -> Subscription:
        return await self._lifecycle.create_free_trial_subscription(
            command.contributor_id, command.package_id
        )

    async def confirm_payment(self, command: ConfirmPaymentCommand) -> Subscription:
        return await self._lifecycle.confirm_payment(
            command.subscription_id,
            transaction_id=command.transaction_id,
            payment_method=command.payment_method,
        )

    async def fail_payment(self, command: FailPaymentCommand) -> Subscription:
        return await self._lifecycle.fail_payment(command.subscription_id, command.reason)

    async def cancel(self, command: CancelSubscriptionCommand) -> Subscription:
        return await self._lifecycle.cancel_subscription(command.subscription_id, command.reason)

    async def renew(self, subscription_id: str) -> Subscription:
        return await self._lifecycle.renew_subscription(subscription_id)

    async def extend(self, command: ExtendSubscriptionCommand) -> Subscription:
        return await self._lifecycle.extend_subscription(command.subscription_id, command.periods)
