# 📄 File: app/modules/subscription_management/infrastructure/database/contributor_repository_impl.py
# 🧭 Purpose (Layman Explanation):
# Handles the actual database work for a contributor's plan information and their list of
# past subscriptions.
# 🧪 Purpose (Technical Summary):
# SQLAlchemy implementation of ContributorRepository; history is an ordered child table.
# 🔗 Dependencies:
# SQLAlchemy, app.shared.core.exceptions, mappers.py
# 🔄 Connected Modules / Calls From:
# Lifecycle Service, test fixtures

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.contributor import Contributor
from app.modules.subscription_management.domain.repositories.contributor_repository import (
    ContributorRepository,
)
from app.modules.subscription_management.infrastructure.database.mappers import (
    contributor_column_value,
    contributor_to_domain,
    integrity_conflict,
)
from app.modules.subscription_management.infrastructure.database.models import (
    ContributorModel,
    ContributorSubscriptionHistoryModel,
)

logger = logging.getLogger(__name__)


class ContributorRepositoryImpl(ContributorRepository):
    """SQLAlchemy implementation of contributor entitlement repository."""

    async def _history(self, session: AsyncSession, contributor_id: str) -> List[str]:
        result = await session.execute(
            select(ContributorSubscriptionHistoryModel.subscription_id)
            .where(ContributorSubscriptionHistoryModel.contributor_id == contributor_id)
            .order_by(ContributorSubscriptionHistoryModel.position)
        )
        return list(result.scalars().all())

    async def create(self, session: AsyncSession, contributor: Contributor) -> Contributor:
        data = contributor.model_dump(exclude={"subscription_history"})
        model = ContributorModel(
            **{key: contributor_column_value(key, value) for key, value in data.items()}
        )
        session.add(model)
        try:
            await session.flush()
        except IntegrityError as e:
            raise integrity_conflict(e) from e
        return contributor_to_domain(model, [])

    async def get_by_id(self, session: AsyncSession, contributor_id: str) -> Optional[Contributor]:
        model = await session.get(ContributorModel, contributor_id, populate_existing=True)
        if model is None:
            return None
        return contributor_to_domain(model, await self._history(session, contributor_id))

    async def update(
        self, session: AsyncSession, contributor_id: str, update_data: Dict[str, Any]
    ) -> Optional[Contributor]:
        model = await session.get(ContributorModel, contributor_id, populate_existing=True)
        if model is None:
            return None

        for key, value in update_data.items():
            setattr(model, key, contributor_column_value(key, value))

        await session.flush()
        logger.debug(f"Contributor {contributor_id} updated: {sorted(update_data)}")
        return contributor_to_domain(model, await self._history(session, contributor_id))

    async def append_history(
        self, session: AsyncSession, contributor_id: str, subscription_id: str
    ) -> None:
        result = await session.execute(
            select(func.coalesce(func.max(ContributorSubscriptionHistoryModel.position), 0))
            .where(ContributorSubscriptionHistoryModel.contributor_id == contributor_id)
        )
        position = result.scalar_one() + 1
        session.add(
            ContributorSubscriptionHistoryModel(
                contributor_id=contributor_id,
                subscription_id=subscription_id,
                position=position,
            )
        )
        await session.flush()

    async def remove_history_entry(
        self, session: AsyncSession, contributor_id: str, subscription_id: str
    ) -> None:
        result = await session.execute(
            select(func.max(ContributorSubscriptionHistoryModel.id)).where(
                ContributorSubscriptionHistoryModel.contributor_id == contributor_id,
                ContributorSubscriptionHistoryModel.subscription_id == subscription_id,
            )
        )
        entry_id = result.scalar_one_or_none()
        if entry_id is None:
            return
        await session.execute(
            delete(ContributorSubscriptionHistoryModel).where(
                ContributorSubscriptionHistoryModel.id == entry_id
            )
        )
