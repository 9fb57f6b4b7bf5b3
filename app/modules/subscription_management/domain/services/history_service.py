# 📄 File: app/modules/subscription_management/domain/services/history_service.py
# 🧭 Purpose (Layman Explanation):
# Shows a contributor all their past and current subscriptions, one page at a time, with a
# short summary of how many are running, finished or cancelled and how much was spent.
# 🧪 Purpose (Technical Summary):
# Read-only History/Reporting view: paginated, filtered subscription history with per-item
# derived fields and aggregate statistics.
# 🔗 Dependencies:
# Subscription domain model, repositories, unit of work, clock, settings
# 🔄 Connected Modules / Calls From:
# Application query handlers, API endpoints

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from app.modules.subscription_management.domain.models.subscription import (
    PaymentStatus,
    Subscription,
    SubscriptionStatus,
)
from app.modules.subscription_management.domain.repositories.contributor_repository import (
    ContributorRepository,
)
from app.modules.subscription_management.domain.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.shared.config.settings import Settings, get_settings
from app.shared.core.clock import Clock, get_clock
from app.shared.core.exceptions import NotFoundError, ValidationError
from app.shared.infrastructure.database.session import UnitOfWorkFactory
from app.shared.utils.dates import ensure_utc


class HistoryItem(BaseModel):
    subscription: Subscription
    days_remaining: int
    is_active: bool
    expiring_soon: bool


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class HistoryStatistics(BaseModel):
    total: int = 0
    active: int = 0
    expired: int = 0
    cancelled: int = 0
    pending: int = 0
    free_trials: int = 0
    total_spent: Decimal = Decimal("0")


class SubscriptionHistory(BaseModel):
    contributor_id: str
    items: List[HistoryItem]
    pagination: Pagination
    statistics: HistoryStatistics


def compute_statistics(subscriptions: List[Subscription], now: datetime) -> HistoryStatistics:
    """
    Aggregate counters over all of a contributor's subscriptions.

    An ACTIVE subscription past its end date that the sweep has not reached yet
    is not counted as active.
    """
    stats = HistoryStatistics(total=len(subscriptions))
    for subscription in subscriptions:
        if subscription.status == SubscriptionStatus.ACTIVE:
            if ensure_utc(subscription.end_date) > ensure_utc(now):
                stats.active += 1
        elif subscription.status == SubscriptionStatus.EXPIRED:
            stats.expired += 1
        elif subscription.status == SubscriptionStatus.CANCELLED:
            stats.cancelled += 1
        elif subscription.status == SubscriptionStatus.PENDING:
            stats.pending += 1

        if subscription.is_free_trial:
            stats.free_trials += 1
        elif subscription.payment_status == PaymentStatus.PAID:
            stats.total_spent += Decimal(subscription.amount)
    return stats


class SubscriptionHistoryService:
    """Read-only reporting over a contributor's subscriptions."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        subscription_repository: SubscriptionRepository,
        contributor_repository: ContributorRepository,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None,
    ):
        self.uow_factory = uow_factory
        self.subscription_repository = subscription_repository
        self.contributor_repository = contributor_repository
        self.clock = clock or get_clock()
        self.settings = settings or get_settings()

    async def _require_contributor(self, session, contributor_id: str) -> None:
        if await self.contributor_repository.get_by_id(session, contributor_id) is None:
            raise NotFoundError(
                "Contributor not found", resource_type="contributor", resource_id=contributor_id
            )

    async def list_contributor_subscriptions(self, contributor_id: str) -> List[Subscription]:
        """All subscriptions of a contributor, newest first."""
        async with self.uow_factory("list_contributor_subscriptions") as uow:
            await self._require_contributor(uow.session, contributor_id)
            return await self.subscription_repository.list_by_contributor(uow.session, contributor_id)

    async def get_subscription_history(
        self,
        contributor_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[SubscriptionStatus] = None,
        include_expired: bool = True,
    ) -> SubscriptionHistory:
        """
        Paginated history with statistics.

        Args:
            contributor_id: Owner of the subscriptions
            page: 1-based page number
            limit: Page size, 1..HISTORY_MAX_PAGE_SIZE
            status: Only subscriptions in this status
            include_expired: When False, hide EXPIRED subscriptions already past their end date

        Raises:
            ValidationError: Invalid page or limit
            NotFoundError: Unknown contributor
        """
        limit = self.settings.HISTORY_PAGE_SIZE if limit is None else limit
        if page < 1:
            raise ValidationError("Page must be at least 1", field="page", value=page)
        if not 1 <= limit <= self.settings.HISTORY_MAX_PAGE_SIZE:
            raise ValidationError(
                f"Limit must be between 1 and {self.settings.HISTORY_MAX_PAGE_SIZE}",
                field="limit", value=limit,
            )

        now = self.clock.now()
        hide_before = None if include_expired else now

        async with self.uow_factory("get_subscription_history") as uow:
            await self._require_contributor(uow.session, contributor_id)
            total = await self.subscription_repository.count_by_contributor(
                uow.session, contributor_id, status=status, hide_expired_before=hide_before
            )
            page_items = await self.subscription_repository.list_by_contributor(
                uow.session, contributor_id, status=status, hide_expired_before=hide_before,
                skip=(page - 1) * limit, limit=limit,
            )
            everything = await self.subscription_repository.list_by_contributor(uow.session, contributor_id)

        total_pages = (total + limit - 1) // limit
        return SubscriptionHistory(
            contributor_id=contributor_id,
            items=[
                HistoryItem(
                    subscription=item,
                    days_remaining=item.days_remaining(now),
                    is_active=item.is_active(now),
                    expiring_soon=item.is_expiring_soon(now),
                )
                for item in page_items
            ],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next_page=page < total_pages,
                has_prev_page=page > 1,
            ),
            statistics=compute_statistics(everything, now),
        )
