"""Subscription management repository interfaces."""

from .contributor_repository import ContributorRepository
from .package_repository import PackageRepository
from .subscription_repository import SubscriptionRepository

__all__ = [
    "ContributorRepository",
    "PackageRepository",
    "SubscriptionRepository",
]
