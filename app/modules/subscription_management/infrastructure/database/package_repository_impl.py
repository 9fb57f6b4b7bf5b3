# 📄 File: app/modules/subscription_management/infrastructure/database/package_repository_impl.py
# 🧭 Purpose (Layman Explanation):
# Handles the actual database work for pricing plans: saving, finding and listing them.
# 🧪 Purpose (Technical Summary):
# SQLAlchemy implementation of PackageRepository with IntegrityError translation.
# 🔗 Dependencies:
# SQLAlchemy, app.shared.core.exceptions, mappers.py
# 🔄 Connected Modules / Calls From:
# Package Service, Lifecycle Service

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.package import Package
from app.modules.subscription_management.domain.repositories.package_repository import PackageRepository
from app.modules.subscription_management.infrastructure.database.mappers import (
    ceiling_to_column,
    integrity_conflict,
    package_to_domain,
    package_to_row,
)
from app.modules.subscription_management.infrastructure.database.models import PackageModel
from app.shared.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

_OPTIONAL_CEILINGS = ("max_projects", "storage_limit", "api_calls_limit")


class PackageRepositoryImpl(PackageRepository):
    """SQLAlchemy implementation of package repository."""

    async def create(self, session: AsyncSession, package: Package) -> Package:
        model = PackageModel(**package_to_row(package))
        session.add(model)
        try:
            await session.flush()
        except IntegrityError as e:
            raise integrity_conflict(e) from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating package {package.name}: {e}")
            raise DatabaseError(f"Failed to create package: {e}", operation="create", table="packages")
        return package_to_domain(model)

    async def get_by_id(self, session: AsyncSession, package_id: str) -> Optional[Package]:
        model = await session.get(PackageModel, package_id, populate_existing=True)
        return package_to_domain(model) if model else None

    async def get_by_name(self, session: AsyncSession, name: str) -> Optional[Package]:
        result = await session.execute(select(PackageModel).where(PackageModel.name == name))
        model = result.scalar_one_or_none()
        return package_to_domain(model) if model else None

    async def list_active(self, session: AsyncSession) -> List[Package]:
        result = await session.execute(
            select(PackageModel)
            .where(PackageModel.is_active.is_(True))
            .order_by(PackageModel.price, PackageModel.name)
        )
        return [package_to_domain(model) for model in result.scalars().all()]

    async def update(
        self, session: AsyncSession, package_id: str, update_data: Dict[str, Any]
    ) -> Optional[Package]:
        model = await session.get(PackageModel, package_id, populate_existing=True)
        if model is None:
            return None

        for key, value in update_data.items():
            if key in _OPTIONAL_CEILINGS:
                value = ceiling_to_column(value)
            setattr(model, key, getattr(value, "value", value))

        try:
            await session.flush()
        except IntegrityError as e:
            raise integrity_conflict(e, package_id) from e
        return package_to_domain(model)
