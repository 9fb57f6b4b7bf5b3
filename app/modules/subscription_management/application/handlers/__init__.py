from .command_handlers import SubscriptionCommandHandler
from .query_handlers import SubscriptionQueryHandler

__all__ = ["SubscriptionCommandHandler", "SubscriptionQueryHandler"]
