from .subscription_queries import (
    GetActiveStatusQuery,
    GetSubscriptionHistoryQuery,
    ListContributorSubscriptionsQuery,
)

__all__ = [
    "GetActiveStatusQuery",
    "GetSubscriptionHistoryQuery",
    "ListContributorSubscriptionsQuery",
]
