# 📄 File: celery_config.py
#
# 🧭 Purpose (Layman Explanation):
# Configuration file for our background task system (Celery) that delivers subscription
# expiration reminders without slowing down the web app.
#
# 🧪 Purpose (Technical Summary):
# Celery configuration for notification delivery: broker and backend settings, the
# notifications queue and its routing, worker limits and environment-specific variants.
# Periodic subscription work runs in the in-process scheduler, not in Celery beat.
#
# 🔗 Dependencies:
# - celery Python package
# - Redis server (message broker)
# - app.shared.config.settings
#
# 🔄 Connected Modules / Calls From:
# - app/background_jobs/tasks/subscription_notifications.py
# - Celery workers (celery -A celery_config worker -Q notifications)

from datetime import timedelta

from celery import Celery
from kombu import Queue

from app.shared.config.settings import get_settings

settings = get_settings()

# =============================================================================
# CELERY CONFIGURATION CLASS
# =============================================================================


class CeleryConfig:
    """
    Celery configuration for the subscription engine.

    Only reminder delivery goes through Celery; expiry sweeps and near-expiry
    scans are owned by SubscriptionScheduler.
    """

    # =========================================================================
    # BROKER AND BACKEND SETTINGS
    # =========================================================================

    broker_url = settings.CELERY_BROKER_URL
    result_backend = settings.CELERY_RESULT_BACKEND

    broker_connection_retry_on_startup = True
    broker_connection_retry = True
    broker_connection_max_retries = 10
    broker_heartbeat = 30
    broker_pool_limit = 10

    result_expires = timedelta(hours=24)

    # =========================================================================
    # TASK SETTINGS
    # =========================================================================

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]
    timezone = "UTC"
    enable_utc = True

    task_default_queue = "default"
    task_default_exchange = "default"
    task_default_exchange_type = "direct"
    task_default_routing_key = "default"

    task_time_limit = 60
    task_soft_time_limit = 45
    task_acks_late = True
    worker_prefetch_multiplier = 1

    task_reject_on_worker_lost = True

    # =========================================================================
    # QUEUE DEFINITIONS
    # =========================================================================

    task_routes = {
        "app.background_jobs.tasks.subscription_notifications.*": {
            "queue": settings.NOTIFICATIONS_QUEUE
        },
    }

    task_queues = (
        Queue(settings.NOTIFICATIONS_QUEUE, routing_key=settings.NOTIFICATIONS_QUEUE, priority=7),
        Queue("default", routing_key="default", priority=3),
    )

    # =========================================================================
    # WORKER SETTINGS
    # =========================================================================

    worker_max_tasks_per_child = 1000
    worker_concurrency = 2
    worker_hijack_root_logger = False
    worker_log_format = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
    worker_task_log_format = "[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s"

    # =========================================================================
    # MONITORING
    # =========================================================================

    task_send_sent_event = True
    task_track_started = True
    task_publish_retry = True
    task_publish_retry_policy = {
        "max_retries": 3,
        "interval_start": 0,
        "interval_step": 0.2,
        "interval_max": 0.2,
    }


# =============================================================================
# ENVIRONMENT-SPECIFIC CONFIGURATIONS
# =============================================================================

class DevelopmentCeleryConfig(CeleryConfig):
    """Development-specific Celery configuration."""

    worker_log_level = "DEBUG"


class TestCeleryConfig(CeleryConfig):
    """Run tasks inline without a broker."""

    task_always_eager = True
    task_eager_propagates = True
    broker_url = "memory://"
    result_backend = "cache+memory://"


class ProductionCeleryConfig(CeleryConfig):
    """Production-specific Celery configuration."""

    worker_log_level = "INFO"
    worker_max_tasks_per_child = 5000
    worker_send_task_events = True


# =============================================================================
# CONFIG FACTORY
# =============================================================================

def get_celery_config() -> CeleryConfig:
    """
    Factory function to get appropriate Celery configuration based on environment.

    Returns:
        CeleryConfig: Configuration instance for current environment
    """
    config_map = {
        "development": DevelopmentCeleryConfig,
        "test": TestCeleryConfig,
        "staging": ProductionCeleryConfig,
        "production": ProductionCeleryConfig,
    }

    config_class = config_map.get(settings.ENVIRONMENT, DevelopmentCeleryConfig)
    return config_class()


# =============================================================================
# CELERY APPLICATION INSTANCE
# =============================================================================

app = Celery("contributor_subscriptions")
app.config_from_object(get_celery_config())

app.autodiscover_tasks(["app.background_jobs.tasks"], related_name="subscription_notifications")


if __name__ == "__main__":
    app.start()
