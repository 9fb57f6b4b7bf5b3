# 📄 File: app/modules/subscription_management/domain/repositories/contributor_repository.py
# 🧭 Purpose (Layman Explanation):
# Lists what the app can do with a contributor's plan information: look it up, change the
# plan-related fields, and keep the list of past subscriptions.
# 🧪 Purpose (Technical Summary):
# Abstract repository interface for the Entitlement Mirror subset of the contributor record.
# 🔗 Dependencies:
# - abc (Abstract Base Classes)
# - Contributor domain model
# - SQLAlchemy AsyncSession
# 🔄 Connected Modules / Calls From:
# - Lifecycle Service (sole writer of entitlement fields)
# - Repository Implementation (concrete implementation)

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.contributor import Contributor


class ContributorRepository(ABC):
    """Abstract repository interface for contributor entitlement operations."""

    @abstractmethod
    async def create(self, session: AsyncSession, contributor: Contributor) -> Contributor:
        """Persist a new contributor."""
        pass

    @abstractmethod
    async def get_by_id(self, session: AsyncSession, contributor_id: str) -> Optional[Contributor]:
        """Get contributor by ID, including subscription history."""
        pass

    @abstractmethod
    async def update(
        self, session: AsyncSession, contributor_id: str, update_data: Dict[str, Any]
    ) -> Optional[Contributor]:
        """Update contributor fields (entitlements, billing info)."""
        pass

    @abstractmethod
    async def append_history(
        self, session: AsyncSession, contributor_id: str, subscription_id: str
    ) -> None:
        """Append a subscription to the contributor's ordered history."""
        pass

    @abstractmethod
    async def remove_history_entry(
        self, session: AsyncSession, contributor_id: str, subscription_id: str
    ) -> None:
        """Remove the most recent history entry for a subscription (compensation only)."""
        pass
