# 📄 File: app/shared/config/settings.py
#
# 🧭 Purpose (Layman Explanation):
# The main configuration center that reads all settings from environment variables
# and hands them to the subscription engine: database, scheduler timings, billing defaults.
#
# 🧪 Purpose (Technical Summary):
# Pydantic-based settings management with environment variable loading,
# validation, and type safety for all application configuration parameters.
#
# 🔗 Dependencies:
# - pydantic-settings for configuration management
# - python-dotenv for .env file loading
# - typing for type hints
#
# 🔄 Connected Modules / Calls From:
# - app.main (application startup)
# - Database connection modules
# - app.background_jobs.scheduler (job cadences)
# - Subscription lifecycle services (currency, payment methods, defaults)

from datetime import time
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety. Settings are loaded
    from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================

    APP_NAME: str = Field(default="Contributor Subscriptions API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    APP_DESCRIPTION: str = Field(
        default="Subscription lifecycle and entitlement engine for contributors",
        description="Application description"
    )
    ENVIRONMENT: str = Field(default="development", description="Runtime environment")
    DEBUG: bool = Field(default=False, description="Debug mode flag")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log output format (json/text)")
    LOG_FILE: Optional[str] = Field(None, description="Optional log file path")
    API_V1_PREFIX: str = Field(default="/api/v1", description="Versioned API mount point")
    CORS_ORIGINS: str = Field(default="*", description="Comma-separated allowed origins")
    HOST: str = Field(default="0.0.0.0", description="Server bind address")
    PORT: int = Field(default=8000, description="Server port")
    RELOAD: bool = Field(default=False, description="Auto-reload in development")
    WORKERS: int = Field(default=1, description="Uvicorn worker processes")

    # =========================================================================
    # DATABASE CONFIGURATION
    # =========================================================================

    DATABASE_URL: Optional[str] = Field(None, description="Async SQLAlchemy connection URL")
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="subscriptions_db", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")

    # Connection Pool Settings
    DB_POOL_SIZE: int = Field(default=10, description="Database pool size")
    DB_MAX_OVERFLOW: int = Field(default=20, description="Database pool overflow")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time")

    # auto = probe the backend once at startup
    DB_TRANSACTION_MODE: str = Field(
        default="auto",
        description="Multi-entity write strategy (auto/transactional/sequential)"
    )

    # =========================================================================
    # SCHEDULER CONFIGURATION
    # =========================================================================

    SCHEDULER_ENABLED: bool = Field(default=True, description="Run background jobs in-process")
    SCHEDULER_TIMEZONE: str = Field(
        default="Africa/Abidjan",
        description="Timezone anchoring the daily expiry sweep"
    )
    EXPIRY_SWEEP_TIME: str = Field(default="00:00", description="Daily sweep local time (HH:MM)")
    NEAR_EXPIRY_SCAN_INTERVAL_MINUTES: int = Field(
        default=60,
        description="Interval between near-expiry scans"
    )
    SCHEDULER_RUN_ON_STARTUP: bool = Field(
        default=True,
        description="Run the expiry sweep once when the scheduler starts"
    )
    EXPIRY_REMINDER_THRESHOLDS: str = Field(
        default="7,3,1",
        description="Days-remaining values that trigger a reminder"
    )

    # =========================================================================
    # SUBSCRIPTION DEFAULTS
    # =========================================================================

    DEFAULT_CURRENCY: str = Field(default="XOF", description="Billing currency")
    ALLOWED_CURRENCIES: str = Field(default="XOF,EUR,USD", description="Accepted currencies")
    ALLOWED_PAYMENT_METHODS: str = Field(
        default="card,paypal,bank_transfer,mobile_money,crypto",
        description="Accepted payment methods"
    )
    DEFAULT_CANCELLATION_REASON: str = Field(
        default="Cancelled by the user",
        description="Reason stored when none is given"
    )
    HISTORY_PAGE_SIZE: int = Field(default=20, description="Default history page size")
    HISTORY_MAX_PAGE_SIZE: int = Field(default=100, description="Maximum history page size")

    # =========================================================================
    # CELERY / BACKGROUND JOBS
    # =========================================================================

    CELERY_BROKER_URL: str = Field(
        default="redis://localhost:6379/1",
        description="Celery broker URL"
    )
    CELERY_RESULT_BACKEND: str = Field(
        default="redis://localhost:6379/2",
        description="Celery result backend URL"
    )
    NOTIFICATIONS_QUEUE: str = Field(
        default="notifications",
        description="Queue receiving expiration reminders"
    )
    NOTIFICATIONS_BACKEND: str = Field(
        default="celery",
        description="Expiration reminder delivery: celery or log"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed_environments = ["development", "staging", "production", "test"]
        if v.lower() not in allowed_environments:
            raise ValueError(f"Environment must be one of {allowed_environments}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of {allowed_levels}")
        return v.upper()

    @field_validator("DB_TRANSACTION_MODE")
    @classmethod
    def validate_transaction_mode(cls, v: str) -> str:
        allowed_modes = ["auto", "transactional", "sequential"]
        if v.lower() not in allowed_modes:
            raise ValueError(f"Transaction mode must be one of {allowed_modes}")
        return v.lower()

    @field_validator("EXPIRY_SWEEP_TIME")
    @classmethod
    def validate_sweep_time(cls, v: str) -> str:
        """Validate HH:MM format."""
        try:
            time.fromisoformat(v)
        except ValueError as e:
            raise ValueError(f"Sweep time must use HH:MM format, got {v!r}") from e
        return v

    @field_validator("NEAR_EXPIRY_SCAN_INTERVAL_MINUTES")
    @classmethod
    def validate_scan_interval(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Scan interval must be at least one minute")
        return v

    @field_validator("NOTIFICATIONS_BACKEND")
    @classmethod
    def validate_notifications_backend(cls, v: str) -> str:
        allowed_backends = ["celery", "log"]
        if v.lower() not in allowed_backends:
            raise ValueError(f"Notifications backend must be one of {allowed_backends}")
        return v.lower()

    @field_validator("EXPIRY_REMINDER_THRESHOLDS")
    @classmethod
    def validate_thresholds(cls, v: str) -> str:
        values = [item.strip() for item in v.split(",") if item.strip()]
        if not values or not all(item.isdigit() and int(item) > 0 for item in values):
            raise ValueError("Reminder thresholds must be positive integers separated by commas")
        return v

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================

    @property
    def database_url(self) -> str:
        """Get the database URL, preferring explicit DATABASE_URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def expiry_sweep_time(self) -> time:
        return time.fromisoformat(self.EXPIRY_SWEEP_TIME)

    @property
    def reminder_thresholds(self) -> List[int]:
        """Reminder thresholds sorted from the farthest to the closest."""
        values = {int(item) for item in self.EXPIRY_REMINDER_THRESHOLDS.split(",") if item.strip()}
        return sorted(values, reverse=True)

    @property
    def uvicorn_workers(self) -> int:
        return 1 if self.RELOAD else self.WORKERS

    @property
    def scheduler_active(self) -> bool:
        """
        Whether this process runs the in-process scheduler.

        Only a single-worker process does: schedulers take no cross-process lock.
        """
        return self.SCHEDULER_ENABLED and self.uvicorn_workers <= 1

    @property
    def allowed_currencies(self) -> List[str]:
        return [item.strip().upper() for item in self.ALLOWED_CURRENCIES.split(",") if item.strip()]

    @property
    def allowed_payment_methods(self) -> List[str]:
        return [item.strip() for item in self.ALLOWED_PAYMENT_METHODS.split(",") if item.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(",") if item.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT == "test"

    @property
    def debug(self) -> bool:
        return self.DEBUG

    @property
    def database_pool_size(self) -> int:
        return self.DB_POOL_SIZE

    @property
    def database_max_overflow(self) -> int:
        return self.DB_MAX_OVERFLOW

    @property
    def database_pool_timeout(self) -> int:
        return self.DB_POOL_TIMEOUT

    @property
    def database_pool_recycle(self) -> int:
        return self.DB_POOL_RECYCLE


# ============================================================================
# SETTINGS FACTORY
# ============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Uses lru_cache to ensure settings are loaded only once
    and reused throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
