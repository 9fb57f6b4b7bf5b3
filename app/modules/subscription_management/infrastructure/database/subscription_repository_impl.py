# 📄 File: app/modules/subscription_management/infrastructure/database/subscription_repository_impl.py
# 🧭 Purpose (Layman Explanation):
# This file handles all the actual database operations for subscriptions - creating them, updating them,
# finding the ones that have run out or are about to, and listing a contributor's past subscriptions.
# 🧪 Purpose (Technical Summary):
# SQLAlchemy implementation of SubscriptionRepository. Every write recomputes next_billing_date and
# unique-index violations (one ACTIVE per contributor, transaction reference) surface as ConflictError.
# 🔗 Dependencies:
# SQLAlchemy, app.shared.core.exceptions, mappers.py, subscription domain model
# 🔄 Connected Modules / Calls From:
# Lifecycle Service, History Service

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, not_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.subscription import (
    Subscription,
    SubscriptionStatus,
    compute_next_billing_date,
)
from app.modules.subscription_management.domain.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.modules.subscription_management.infrastructure.database.mappers import (
    integrity_conflict,
    subscription_column_value,
    subscription_to_domain,
    subscription_to_row,
)
from app.modules.subscription_management.infrastructure.database.models import SubscriptionModel
from app.shared.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class SubscriptionRepositoryImpl(SubscriptionRepository):
    """
    SQLAlchemy implementation of subscription repository.
    Handles all subscription database operations with proper error handling.
    """

    @staticmethod
    def _refresh_billing_date(model: SubscriptionModel) -> None:
        model.next_billing_date = compute_next_billing_date(
            SubscriptionStatus(model.status), model.auto_renewal, model.end_date
        )

    async def _flush(self, session: AsyncSession, subscription_id: str, operation: str) -> None:
        try:
            await session.flush()
        except IntegrityError as e:
            logger.warning(f"Integrity violation on subscription {subscription_id}: {e.orig}")
            raise integrity_conflict(e, subscription_id) from e
        except SQLAlchemyError as e:
            logger.error(f"Error during subscription {operation} for {subscription_id}: {e}")
            raise DatabaseError(
                f"Failed to {operation} subscription: {e}", operation=operation, table="subscriptions"
            )

    @staticmethod
    def _contributor_filter(
        contributor_id: str,
        status: Optional[SubscriptionStatus],
        hide_expired_before: Optional[datetime],
    ):
        conditions = [SubscriptionModel.contributor_id == contributor_id]
        if status is not None:
            conditions.append(SubscriptionModel.status == SubscriptionStatus(status).value)
        if hide_expired_before is not None:
            conditions.append(
                not_(
                    and_(
                        SubscriptionModel.status == SubscriptionStatus.EXPIRED.value,
                        SubscriptionModel.end_date <= hide_expired_before,
                    )
                )
            )
        return and_(*conditions)

    async def create(self, session: AsyncSession, subscription: Subscription) -> Subscription:
        model = SubscriptionModel(**subscription_to_row(subscription))
        self._refresh_billing_date(model)
        session.add(model)
        await self._flush(session, subscription.subscription_id, "create")
        return subscription_to_domain(model)

    async def get_by_id(self, session: AsyncSession, subscription_id: str) -> Optional[Subscription]:
        model = await session.get(SubscriptionModel, subscription_id, populate_existing=True)
        return subscription_to_domain(model) if model else None

    async def update(
        self, session: AsyncSession, subscription_id: str, update_data: Dict[str, Any]
    ) -> Optional[Subscription]:
        model = await session.get(SubscriptionModel, subscription_id, populate_existing=True)
        if model is None:
            return None

        for key, value in update_data.items():
            attribute = "extra_metadata" if key == "metadata" else key
            setattr(model, attribute, subscription_column_value(key, value))
        self._refresh_billing_date(model)

        await self._flush(session, subscription_id, "update")
        return subscription_to_domain(model)

    async def delete(self, session: AsyncSession, subscription_id: str) -> bool:
        result = await session.execute(
            delete(SubscriptionModel).where(SubscriptionModel.subscription_id == subscription_id)
        )
        return result.rowcount > 0

    async def get_active_for_contributor(
        self, session: AsyncSession, contributor_id: str
    ) -> Optional[Subscription]:
        result = await session.execute(
            select(SubscriptionModel)
            .where(
                SubscriptionModel.contributor_id == contributor_id,
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
            )
            .execution_options(populate_existing=True)
        )
        model = result.scalars().first()
        return subscription_to_domain(model) if model else None

    async def has_free_trial(self, session: AsyncSession, contributor_id: str) -> bool:
        result = await session.execute(
            select(func.count(SubscriptionModel.subscription_id)).where(
                SubscriptionModel.contributor_id == contributor_id,
                SubscriptionModel.is_free_trial.is_(True),
            )
        )
        return result.scalar_one() > 0

    async def list_by_contributor(
        self,
        session: AsyncSession,
        contributor_id: str,
        status: Optional[SubscriptionStatus] = None,
        hide_expired_before: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Subscription]:
        query = (
            select(SubscriptionModel)
            .where(self._contributor_filter(contributor_id, status, hide_expired_before))
            .order_by(SubscriptionModel.created_at.desc(), SubscriptionModel.start_date.desc())
            .offset(skip)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            query = query.limit(limit)

        result = await session.execute(query)
        return [subscription_to_domain(model) for model in result.scalars().all()]

    async def count_by_contributor(
        self,
        session: AsyncSession,
        contributor_id: str,
        status: Optional[SubscriptionStatus] = None,
        hide_expired_before: Optional[datetime] = None,
    ) -> int:
        result = await session.execute(
            select(func.count(SubscriptionModel.subscription_id)).where(
                self._contributor_filter(contributor_id, status, hide_expired_before)
            )
        )
        return result.scalar_one()

    async def find_due_for_expiry(self, session: AsyncSession, now: datetime) -> List[Subscription]:
        result = await session.execute(
            select(SubscriptionModel)
            .where(
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
                SubscriptionModel.end_date <= now,
            )
            .order_by(SubscriptionModel.end_date)
            .execution_options(populate_existing=True)
        )
        return [subscription_to_domain(model) for model in result.scalars().all()]

    async def find_ending_between(
        self, session: AsyncSession, start: datetime, end: datetime
    ) -> List[Subscription]:
        result = await session.execute(
            select(SubscriptionModel)
            .where(
                SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
                SubscriptionModel.end_date > start,
                SubscriptionModel.end_date <= end,
            )
            .order_by(SubscriptionModel.end_date)
            .execution_options(populate_existing=True)
        )
        return [subscription_to_domain(model) for model in result.scalars().all()]
