# 📄 File: app/background_jobs/tasks/subscription_notifications.py
#
# 🧭 Purpose (Layman Explanation):
# The background worker job that hands a "your subscription ends soon" reminder to the
# messaging system, so the web app never waits on email delivery.
#
# 🧪 Purpose (Technical Summary):
# Celery task consuming expiration reminders from the notifications queue. Delivery errors
# are logged and returned; the subscription engine never retries them.
#
# 🔗 Dependencies:
# - celery (celery_config.app)
# - app.shared.utils.logging
#
# 🔄 Connected Modules / Calls From:
# - CeleryExpirationNotifier (enqueues)
# - Celery workers consuming the notifications queue

from typing import Any, Dict, Optional

from celery_config import app as celery_app
from app.modules.subscription_management.infrastructure.notifications.expiration_notifier import (
    render_reminder_message,
)
from app.shared.utils.logging import get_logger, log_context

logger = get_logger(__name__)


@celery_app.task(
    bind=True,
    name="app.background_jobs.tasks.subscription_notifications.send_expiration_reminder",
)
def send_expiration_reminder(
    self,
    subscription_id: str,
    threshold: str,
    days_remaining: int,
    contributor_id: Optional[str] = None,
    end_date: Optional[str] = None,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Deliver one expiration reminder.

    Args:
        subscription_id: Subscription about to expire
        threshold: week, three_days or one_day
        days_remaining: Whole days left when the reminder fired
        contributor_id: Owner of the subscription
        end_date: ISO-8601 end of the subscription period
        message: Pre-rendered text; rendered from the threshold when omitted

    Returns:
        Dict describing the dispatched reminder
    """
    with log_context(request_id=self.request.id, job_name="send_expiration_reminder"):
        text = message or render_reminder_message(threshold, days_remaining)
        logger.log_business_event(
            "expiration_reminder_sent",
            text,
            entity_id=subscription_id,
            entity_type="subscription",
            extra={
                "threshold": threshold,
                "days_remaining": days_remaining,
                "contributor_id": contributor_id,
                "end_date": end_date,
            },
        )
        return {
            "subscription_id": subscription_id,
            "contributor_id": contributor_id,
            "threshold": threshold,
            "message": text,
        }
