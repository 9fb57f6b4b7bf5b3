# 📄 File: app/modules/subscription_management/infrastructure/notifications/expiration_notifier.py
# 🧭 Purpose (Layman Explanation):
# Sends the "your subscription ends soon" reminders. The scheduler only says when to send one;
# this file decides how it leaves the building (a background task queue, or just the logs).
# 🧪 Purpose (Technical Summary):
# ExpirationNotifier port plus a Celery adapter enqueuing the reminder task on the notifications
# queue and a logging adapter for environments without a broker.
# 🔗 Dependencies:
# celery (via celery_config), asyncio, app.shared.utils.logging
# 🔄 Connected Modules / Calls From:
# lifecycle_service.py (near-expiry scan), presentation dependencies, app.main

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from app.shared.config.settings import get_settings
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

REMINDER_MESSAGES = {
    "week": "Your subscription expires in one week.",
    "three_days": "Your subscription expires in three days.",
    "one_day": "Your subscription expires tomorrow.",
}


def render_reminder_message(threshold: str, days_remaining: int) -> str:
    """Human-readable reminder text for a threshold label."""
    return REMINDER_MESSAGES.get(
        threshold, f"Your subscription expires in {days_remaining} days."
    )


class ExpirationNotifier(ABC):
    """Fire-and-forget delivery of expiration reminders."""

    @abstractmethod
    async def send_expiration_reminder(
        self,
        subscription_id: str,
        threshold: str,
        days_remaining: int,
        contributor_id: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> None:
        """Dispatch one reminder; raising signals a delivery failure."""


def _payload(
    subscription_id: str,
    threshold: str,
    days_remaining: int,
    contributor_id: Optional[str],
    end_date: Optional[datetime],
) -> Dict[str, Any]:
    return {
        "subscription_id": subscription_id,
        "threshold": threshold,
        "days_remaining": days_remaining,
        "contributor_id": contributor_id,
        "end_date": end_date.isoformat() if end_date else None,
        "message": render_reminder_message(threshold, days_remaining),
    }


class CeleryExpirationNotifier(ExpirationNotifier):
    """Enqueue reminders on the Celery notifications queue."""

    def __init__(self, queue: Optional[str] = None):
        self.queue = queue or get_settings().NOTIFICATIONS_QUEUE

    async def send_expiration_reminder(
        self,
        subscription_id: str,
        threshold: str,
        days_remaining: int,
        contributor_id: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> None:
        from app.background_jobs.tasks.subscription_notifications import send_expiration_reminder

        payload = _payload(subscription_id, threshold, days_remaining, contributor_id, end_date)
        # apply_async talks to the broker synchronously
        result = await asyncio.to_thread(
            send_expiration_reminder.apply_async, kwargs=payload, queue=self.queue
        )
        logger.info(
            "Expiration reminder enqueued",
            subscription_id=subscription_id,
            threshold=threshold,
            task_id=result.id,
        )


class LoggingExpirationNotifier(ExpirationNotifier):
    """Record reminders in the application log only."""

    async def send_expiration_reminder(
        self,
        subscription_id: str,
        threshold: str,
        days_remaining: int,
        contributor_id: Optional[str] = None,
        end_date: Optional[datetime] = None,
    ) -> None:
        logger.log_business_event(
            "expiration_reminder",
            render_reminder_message(threshold, days_remaining),
            entity_id=subscription_id,
            entity_type="subscription",
            extra=_payload(subscription_id, threshold, days_remaining, contributor_id, end_date),
        )


def build_expiration_notifier(backend: Optional[str] = None) -> ExpirationNotifier:
    """Build the notifier selected by NOTIFICATIONS_BACKEND."""
    backend = backend or get_settings().NOTIFICATIONS_BACKEND
    if backend == "log":
        return LoggingExpirationNotifier()
    return CeleryExpirationNotifier()
