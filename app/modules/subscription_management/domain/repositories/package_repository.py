# 📄 File: app/modules/subscription_management/domain/repositories/package_repository.py
# 🧭 Purpose (Layman Explanation):
# Lists what the app can do with stored pricing plans: save a new one, look one up, list the
# plans on sale, and take a plan off sale.
# 🧪 Purpose (Technical Summary):
# Abstract repository interface for Plan Catalog persistence.
# 🔗 Dependencies:
# - abc (Abstract Base Classes)
# - Package domain model
# - SQLAlchemy AsyncSession
# 🔄 Connected Modules / Calls From:
# - Package Service, Lifecycle Service
# - Repository Implementation (concrete implementation)

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.package import Package


class PackageRepository(ABC):
    """Abstract repository interface for package data access operations."""

    @abstractmethod
    async def create(self, session: AsyncSession, package: Package) -> Package:
        """Persist a new package."""
        pass

    @abstractmethod
    async def get_by_id(self, session: AsyncSession, package_id: str) -> Optional[Package]:
        """Get package by ID."""
        pass

    @abstractmethod
    async def get_by_name(self, session: AsyncSession, name: str) -> Optional[Package]:
        """Get package by its unique name."""
        pass

    @abstractmethod
    async def list_active(self, session: AsyncSession) -> List[Package]:
        """Get all packages currently on sale."""
        pass

    @abstractmethod
    async def update(
        self, session: AsyncSession, package_id: str, update_data: Dict[str, Any]
    ) -> Optional[Package]:
        """Update package fields."""
        pass
