# 📄 File: app/modules/subscription_management/application/handlers/query_handlers.py
# 🧭 Purpose (Layman Explanation):
# Answers questions about a contributor's subscriptions by asking the right service.
#
# 🧪 Purpose (Technical Summary):
# CQRS query handler over SubscriptionLifecycleService (active status) and
# SubscriptionHistoryService (listing, paginated history).
#
# 🔗 Dependencies:
# - application.queries
# - domain.services
# - presentation.dependencies
#
# 🔄 Connected Modules / Calls From:
# - presentation.api.v1.subscriptions

__all__ = ["SubscriptionQueryHandler"]

from typing import List

from fastapi import Depends

from app.modules.subscription_management.application.queries.subscription_queries import (
    GetActiveStatusQuery,
    GetSubscriptionHistoryQuery,
    ListContributorSubscriptionsQuery,
)
from app.modules.subscription_management.domain.models.subscription import Subscription
from app.modules.subscription_management.domain.services.history_service import (
    SubscriptionHistory,
    SubscriptionHistoryService,
)
from app.modules.subscription_management.domain.services.lifecycle_service import (
    ActiveStatus,
    SubscriptionLifecycleService,
)
from app.modules.subscription_management.presentation.dependencies import (
    get_history_service,
    get_lifecycle_service,
)


class SubscriptionQueryHandler:
    """Handles read-only subscription queries."""

    def __init__(
        self,
        lifecycle_service: SubscriptionLifecycleService = Depends(get_lifecycle_service),
        history_service: SubscriptionHistoryService = Depends(get_history_service),
    ):
        self._lifecycle = lifecycle_service
        self._history = history_service

    async def active_status(self, query: GetActiveStatusQuery) -> ActiveStatus:
        return await self._lifecycle.get_active_status(query.contributor_id)

    async def list_subscriptions(self, query: ListContributorSubscriptionsQuery) -> List[Subscription]:
        return await self._history.list_contributor_subscriptions(query.contributor_id)

    async def history(self, query: GetSubscriptionHistoryQuery) -> SubscriptionHistory:
        return await self._history.get_subscription_history(
            query.contributor_id,
            page=query.page,
            limit=query.limit,
            status=query.status,
            include_expired=query.include_expired,
        )
