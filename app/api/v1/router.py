# 📄 File: app/api/v1/router.py
# 🧭 Purpose (Layman Explanation):
# The traffic director for version 1 of the API: sends subscription requests to the subscription
# endpoints, plan requests to the catalog endpoints and job requests to the scheduler endpoints.
# 🧪 Purpose (Technical Summary):
# Main API v1 router aggregation combining module routers under their prefixes.
# 🔗 Dependencies:
# FastAPI, app.api.v1.scheduler, app.modules.subscription_management.presentation.api.v1
# 🔄 Connected Modules / Calls From:
# app.main

from typing import Any, Dict

from fastapi import APIRouter

from app.modules.subscription_management.presentation.api.v1 import (
    packages_router,
    subscriptions_router,
)

from . import API_TAGS, ROUTE_PREFIXES, get_api_info
from .scheduler import scheduler_router

# Create main API v1 router
api_v1_router = APIRouter()

api_v1_router.include_router(
    subscriptions_router,
    prefix=ROUTE_PREFIXES["subscriptions"],
    tags=[API_TAGS["subscriptions"]],
)
api_v1_router.include_router(
    packages_router,
    prefix=ROUTE_PREFIXES["packages"],
    tags=[API_TAGS["packages"]],
)
api_v1_router.include_router(
    scheduler_router,
    prefix=ROUTE_PREFIXES["scheduler"],
    tags=[API_TAGS["scheduler"]],
)


@api_v1_router.get("/", summary="API v1 Information", tags=["API Info"])
async def api_v1_info() -> Dict[str, Any]:
    return get_api_info()
