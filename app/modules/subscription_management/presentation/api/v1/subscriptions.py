# 📄 File: app/modules/subscription_management/presentation/api/v1/subscriptions.py
# 🧭 Purpose (Layman Explanation):
# The web addresses other parts of the platform call to start, pay for, cancel, renew or extend a
# subscription, and to ask whether a contributor is covered and what they subscribed to before.
#
# 🧪 Purpose (Technical Summary):
# FastAPI endpoints for the lifecycle engine and the history view. Each route converts its request
# schema into an application command/query and delegates to the CQRS handlers; domain exceptions
# are rendered by the application-wide exception handler.
#
# 🔗 Dependencies:
# - FastAPI router, Query parameters, status codes
# - app.modules.subscription_management.application.handlers
# - app.modules.subscription_management.presentation.api.schemas
#
# 🔄 Connected Modules / Calls From:
# - app.api.v1.router (mounted at /subscriptions)
# - Payment gateway callbacks, contributor dashboard

"""
Subscriptions API Endpoints

Endpoints:
- POST /: Create a PENDING subscription
- POST /free-trial: Start a free trial
- POST /{subscription_id}/confirm-payment: Activate after payment
- POST /{subscription_id}/fail-payment: Record a declined payment
- PUT /{subscription_id}/cancel: Cancel with an optional reason
- POST /{subscription_id}/renew: Buy the same package again
- POST /{subscription_id}/extend: Extend an active subscription in place
- GET /contributor/{contributor_id}: All subscriptions, newest first
- GET /contributor/{contributor_id}/status: Active-status check
- GET /contributor/{contributor_id}/history: Paginated history with statistics

Authentication is handled upstream of this service.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.modules.subscription_management.application.handlers.command_handlers import (
    SubscriptionCommandHandler,
)
from app.modules.subscription_management.application.handlers.query_handlers import (
    SubscriptionQueryHandler,
)
from app.modules.subscription_management.application.queries.subscription_queries import (
    GetActiveStatusQuery,
    GetSubscriptionHistoryQuery,
    ListContributorSubscriptionsQuery,
)
from app.modules.subscription_management.domain.models.subscription import SubscriptionStatus
from app.modules.subscription_management.domain.services.history_service import SubscriptionHistory
from app.modules.subscription_management.domain.services.lifecycle_service import ActiveStatus
from app.modules.subscription_management.presentation.api.schemas.subscription_schemas import (
    CancelSubscriptionRequest,
    ConfirmPaymentRequest,
    CreateSubscriptionRequest,
    ExtendSubscriptionRequest,
    FailPaymentRequest,
    FreeTrialRequest,
    SubscriptionResponse,
)
from app.shared.core.clock import Clock, get_clock
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

subscriptions_router = APIRouter()


# =========================================================================
# LIFECYCLE COMMANDS
# =========================================================================

@subscriptions_router.post(
    "/",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create subscription",
    responses={
        404: {"description": "Contributor or package not found"},
        409: {"description": "Active subscription exists or package inactive"},
    },
)
async def create_subscription(
    request: CreateSubscriptionRequest,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    """Create a PENDING subscription awaiting payment confirmation."""
    subscription = await handler.create(request.to_command())
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.post(
    "/free-trial",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start free trial",
)
async def start_free_trial(
    request: FreeTrialRequest,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    subscription = await handler.start_free_trial(request.to_command())
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.post(
    "/{subscription_id}/confirm-payment",
    response_model=SubscriptionResponse,
    summary="Confirm payment",
    responses={409: {"description": "Already paid, not pending, or another subscription active"}},
)
async def confirm_payment(
    subscription_id: str,
    request: Optional[ConfirmPaymentRequest] = None,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    """
    Payment gateway callback: activates the subscription and mirrors its
    entitlements onto the contributor.
    """
    command = (request or ConfirmPaymentRequest()).to_command(subscription_id)
    subscription = await handler.confirm_payment(command)
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.post(
    "/{subscription_id}/fail-payment",
    response_model=SubscriptionResponse,
    summary="Record failed payment",
    responses={409: {"description": "Subscription is not pending or already paid"}},
)
async def fail_payment(
    subscription_id: str,
    request: Optional[FailPaymentRequest] = None,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    """Payment gateway callback for a declined payment. The subscription stays PENDING."""
    command = (request or FailPaymentRequest()).to_command(subscription_id)
    subscription = await handler.fail_payment(command)
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.put(
    "/{subscription_id}/cancel",
    response_model=SubscriptionResponse,
    summary="Cancel subscription",
)
async def cancel_subscription(
    subscription_id: str,
    request: Optional[CancelSubscriptionRequest] = None,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    command = (request or CancelSubscriptionRequest()).to_command(subscription_id)
    subscription = await handler.cancel(command)
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.post(
    "/{subscription_id}/renew",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Renew subscription",
)
async def renew_subscription(
    subscription_id: str,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    """Create a new PENDING subscription for the same contributor and package."""
    subscription = await handler.renew(subscription_id)
    return SubscriptionResponse.from_subscription(subscription, clock.now())


@subscriptions_router.post(
    "/{subscription_id}/extend",
    response_model=SubscriptionResponse,
    summary="Extend active subscription",
)
async def extend_subscription(
    subscription_id: str,
    request: Optional[ExtendSubscriptionRequest] = None,
    handler: SubscriptionCommandHandler = Depends(SubscriptionCommandHandler),
    clock: Clock = Depends(get_clock),
) -> SubscriptionResponse:
    command = (request or ExtendSubscriptionRequest()).to_command(subscription_id)
    subscription = await handler.extend(command)
    return SubscriptionResponse.from_subscription(subscription, clock.now())


# =========================================================================
# CONTRIBUTOR QUERIES
# =========================================================================

@subscriptions_router.get(
    "/contributor/{contributor_id}",
    response_model=List[SubscriptionResponse],
    summary="List contributor subscriptions",
)
async def list_contributor_subscriptions(
    contributor_id: str,
    handler: SubscriptionQueryHandler = Depends(SubscriptionQueryHandler),
    clock: Clock = Depends(get_clock),
) -> List[SubscriptionResponse]:
    subscriptions = await handler.list_subscriptions(
        ListContributorSubscriptionsQuery(contributor_id=contributor_id)
    )
    now = clock.now()
    return [SubscriptionResponse.from_subscription(item, now) for item in subscriptions]


@subscriptions_router.get(
    "/contributor/{contributor_id}/status",
    response_model=ActiveStatus,
    summary="Active subscription status",
)
async def get_active_status(
    contributor_id: str,
    handler: SubscriptionQueryHandler = Depends(SubscriptionQueryHandler),
) -> ActiveStatus:
    return await handler.active_status(GetActiveStatusQuery(contributor_id=contributor_id))


@subscriptions_router.get(
    "/contributor/{contributor_id}/history",
    response_model=SubscriptionHistory,
    summary="Subscription history",
    responses={422: {"description": "Invalid page or limit"}},
)
async def get_subscription_history(
    contributor_id: str,
    page: int = Query(1, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size, at most 100"),
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    include_expired: bool = Query(True),
    handler: SubscriptionQueryHandler = Depends(SubscriptionQueryHandler),
) -> SubscriptionHistory:
    return await handler.history(GetSubscriptionHistoryQuery(
        contributor_id=contributor_id,
        page=page,
        limit=limit,
        status=status_filter,
        include_expired=include_expired,
    ))
