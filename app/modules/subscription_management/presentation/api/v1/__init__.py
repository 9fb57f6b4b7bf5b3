from .packages import packages_router
from .subscriptions import subscriptions_router

__all__ = ["packages_router", "subscriptions_router"]
