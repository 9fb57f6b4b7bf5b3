# 📄 File: app/modules/subscription_management/application/queries/subscription_queries.py
#
# 🧭 Purpose (Layman Explanation):
# The questions the app answers about subscriptions: "is this contributor covered right now?"
# and "what have they subscribed to before?"
#
# 🧪 Purpose (Technical Summary):
# CQRS query definitions for active-status and history reads.
#
# 🔗 Dependencies:
# - pydantic
#
# 🔄 Connected Modules / Calls From:
# - application.handlers.query_handlers
# - presentation.api.v1.subscriptions

from typing import Optional

from pydantic import BaseModel, Field

from app.modules.subscription_management.domain.models.subscription import SubscriptionStatus


class GetActiveStatusQuery(BaseModel):
    contributor_id: str


class ListContributorSubscriptionsQuery(BaseModel):
    contributor_id: str


class GetSubscriptionHistoryQuery(BaseModel):
    """Paginated history; bounds on ``limit`` are enforced by the history service."""

    contributor_id: str
    page: int = Field(default=1)
    limit: Optional[int] = None
    status: Optional[SubscriptionStatus] = None
    include_expired: bool = True
