# 📄 File: app/api/v1/__init__.py
# 🧭 Purpose (Layman Explanation):
# Version 1 of the subscription API, kept in its own section so later versions can be added
# without breaking existing callers.
# 🧪 Purpose (Technical Summary):
# API v1 metadata, route prefixes and OpenAPI tags shared by the v1 router.
# 🔗 Dependencies:
# app.shared.config.settings
# 🔄 Connected Modules / Calls From:
# app.api.v1.router, app.main

"""
Contributor Subscriptions API Version 1

Structure:
    v1/
    ├── __init__.py          # This file
    ├── router.py            # Main v1 router aggregation
    ├── health.py            # Health check endpoints
    └── scheduler.py         # Scheduler job status and manual runs

Subscription and package routes live in
app.modules.subscription_management.presentation.api.v1.
"""

from typing import Any, Dict

from app.shared.config.settings import get_settings

__api_version__ = "v1"

ROUTE_PREFIXES = {
    "subscriptions": "/subscriptions",
    "packages": "/packages",
    "scheduler": "/scheduler",
}

API_TAGS = {
    "subscriptions": "Subscriptions",
    "packages": "Packages",
    "scheduler": "Scheduler",
    "health": "Health Check",
}


def get_api_info() -> Dict[str, Any]:
    """API v1 version information and route map."""
    settings = get_settings()
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": __api_version__,
        "environment": settings.ENVIRONMENT,
        "routes": {name: f"{settings.API_V1_PREFIX}{prefix}" for name, prefix in ROUTE_PREFIXES.items()},
    }
