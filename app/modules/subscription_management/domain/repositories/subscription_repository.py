# 📄 File: app/modules/subscription_management/domain/repositories/subscription_repository.py
# 🧭 Purpose (Layman Explanation):
# Lists what the app can do with stored subscriptions, like creating them, changing their
# status, and finding the ones that are about to run out or already have.
# 🧪 Purpose (Technical Summary):
# Abstract repository interface for subscription persistence, lifecycle scans
# (expiry sweep, near-expiry window) and contributor history queries.
# 🔗 Dependencies:
# - abc (Abstract Base Classes)
# - datetime types
# - Subscription domain model
# - SQLAlchemy AsyncSession
# 🔄 Connected Modules / Calls From:
# - Lifecycle Service (business logic)
# - History Service (reporting)
# - Repository Implementation (concrete implementation)

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.subscription_management.domain.models.subscription import (
    Subscription,
    SubscriptionStatus,
)


class SubscriptionRepository(ABC):
    """
    Abstract repository interface for subscription data access operations.

    Provides methods for managing the subscription lifecycle, the scheduler
    scans and contributor history.
    """

    @abstractmethod
    async def create(self, session: AsyncSession, subscription: Subscription) -> Subscription:
        """Create a new subscription."""
        pass

    @abstractmethod
    async def get_by_id(self, session: AsyncSession, subscription_id: str) -> Optional[Subscription]:
        """Get subscription by ID."""
        pass

    @abstractmethod
    async def update(
        self, session: AsyncSession, subscription_id: str, update_data: Dict[str, Any]
    ) -> Optional[Subscription]:
        """Update subscription fields."""
        pass

    @abstractmethod
    async def delete(self, session: AsyncSession, subscription_id: str) -> bool:
        """Delete subscription (compensation only)."""
        pass

    @abstractmethod
    async def get_active_for_contributor(
        self, session: AsyncSession, contributor_id: str
    ) -> Optional[Subscription]:
        """Get the contributor's ACTIVE subscription, if any."""
        pass

    @abstractmethod
    async def has_free_trial(self, session: AsyncSession, contributor_id: str) -> bool:
        """Whether the contributor ever had a free-trial subscription."""
        pass

    @abstractmethod
    async def list_by_contributor(
        self,
        session: AsyncSession,
        contributor_id: str,
        status: Optional[SubscriptionStatus] = None,
        hide_expired_before: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Subscription]:
        """List a contributor's subscriptions, newest first."""
        pass

    @abstractmethod
    async def count_by_contributor(
        self,
        session: AsyncSession,
        contributor_id: str,
        status: Optional[SubscriptionStatus] = None,
        hide_expired_before: Optional[datetime] = None,
    ) -> int:
        """Count a contributor's subscriptions with the same filters as list_by_contributor."""
        pass

    @abstractmethod
    async def find_due_for_expiry(self, session: AsyncSession, now: datetime) -> List[Subscription]:
        """ACTIVE subscriptions whose end date is at or before ``now``."""
        pass

    @abstractmethod
    async def find_ending_between(
        self, session: AsyncSession, start: datetime, end: datetime
    ) -> List[Subscription]:
        """ACTIVE subscriptions with ``start < end_date <= end``."""
        pass
