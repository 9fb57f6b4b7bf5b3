# 📄 File: app/shared/infrastructure/database/connection.py
#
# 🧭 Purpose (Layman Explanation):
# Manages the connection to our database, making sure we can talk to our data storage,
# handle many connections efficiently, and find out whether the database can undo half-finished work.
#
# 🧪 Purpose (Technical Summary):
# Implements async SQLAlchemy database connection management with connection pooling, health checks,
# retry logic and a runtime probe for multi-statement transaction support.
#
# 🔗 Dependencies:
# - sqlalchemy (async engine and declarative base)
# - app/shared/config/settings.py (database configuration)
# - asyncpg (PostgreSQL async driver)
#
# 🔄 Connected Modules / Calls From:
# - app/shared/infrastructure/database/session.py (session management, unit of work)
# - All module ORM models (declarative Base)
# - app/api/v1/health.py (database health monitoring)

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.shared.config.settings import get_settings

logger = logging.getLogger(__name__)

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by every module's ORM models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


async def probe_transaction_support(engine: AsyncEngine) -> bool:
    """
    Open a transaction and a SAVEPOINT on ``engine`` and roll both back.

    Returns:
        bool: False when the backend rejects either statement
    """
    try:
        async with engine.connect() as conn:
            outer = await conn.begin()
            nested = await conn.begin_nested()
            await conn.execute(text("SELECT 1"))
            await nested.rollback()
            await outer.rollback()
        return True
    except (SQLAlchemyError, NotImplementedError) as e:
        logger.warning(
            f"Backend rejected transaction probe, falling back to sequential writes: {e}"
        )
        return False


class DatabaseConnectionManager:
    """
    Manages database connections with connection pooling,
    health monitoring, automatic retry logic and transaction support detection.
    """

    def __init__(self):
        self._engine: Optional[AsyncEngine] = None
        self._health_check_query = text("SELECT 1")
        self._retry_attempts = 3
        self._retry_delay = 1.0
        self._supports_transactions: Optional[bool] = None

    def _build_connection_params(self) -> Dict[str, Any]:
        """Build SQLAlchemy connection parameters from settings."""
        settings = get_settings()
        params: Dict[str, Any] = {
            "url": settings.database_url,
            "echo": settings.debug,
            "pool_pre_ping": True,  # Validate connections before use
        }

        if settings.database_url.startswith("postgresql"):
            params.update({
                "pool_recycle": settings.database_pool_recycle,
                "pool_size": settings.database_pool_size,
                "max_overflow": settings.database_max_overflow,
                "pool_timeout": settings.database_pool_timeout,
                "connect_args": {
                    "server_settings": {
                        "application_name": "contributor_subscriptions",
                        "jit": "off",
                    },
                    "command_timeout": 60,
                    "statement_cache_size": 0,
                },
            })
        return params

    async def initialize(self, engine: Optional[AsyncEngine] = None) -> None:
        """
        Initialize the database engine.

        Args:
            engine: Pre-built engine to adopt (tests, scripts); built from settings when omitted
        """
        if self._engine is not None:
            logger.warning("Database engine already initialized")
            return

        try:
            logger.info("Initializing database connection pool...")
            self._engine = engine or create_async_engine(**self._build_connection_params())

            health = await self.health_check()
            if health["status"] != "healthy":
                raise RuntimeError(health.get("error", "Database health check failed"))

            logger.info("Database connection pool initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database connection: {e}")
            if self._engine is not None and engine is None:
                await self._engine.dispose()
            self._engine = None
            raise

    async def health_check(self) -> dict:
        """
        Perform database health check and return structured status.
        """
        if self._engine is None:
            logger.error("Database engine not initialized")
            return {
                "status": "unhealthy",
                "error": "Database engine not initialized",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        for attempt in range(self._retry_attempts):
            try:
                async with self._engine.connect() as conn:
                    result = await conn.execute(self._health_check_query)
                    result.scalar()

                logger.debug("Database health check passed")
                return {
                    "status": "healthy",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }

            except SQLAlchemyError as e:
                logger.warning(
                    f"Database health check failed (attempt {attempt + 1}/{self._retry_attempts}): {e}"
                )
                if attempt < self._retry_attempts - 1:
                    await asyncio.sleep(self._retry_delay * (2 ** attempt))

        logger.error("Database health check failed after all retry attempts")
        return {
            "status": "unhealthy",
            "error": "Database health check failed after all retry attempts",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    async def probe_transaction_support(self) -> bool:
        """
        Detect whether the backend supports multi-statement transactions.

        Opens a transaction and a SAVEPOINT and rolls both back. The result is
        cached for the lifetime of the engine.

        Returns:
            bool: True when writes can be grouped atomically
        """
        if self._supports_transactions is not None:
            return self._supports_transactions

        if self._engine is None:
            raise RuntimeError("Database engine not initialized")

        self._supports_transactions = await probe_transaction_support(self._engine)

        logger.info(
            "Transaction support detected" if self._supports_transactions
            else "Transaction support unavailable"
        )
        return self._supports_transactions

    async def close(self) -> None:
        """Close database engine and all connections."""
        if self._engine is None:
            logger.warning("Database engine not initialized, nothing to close")
            return

        try:
            logger.info("Closing database connection pool...")
            await self._engine.dispose()
            logger.info("Database connection pool closed successfully")
        finally:
            self._engine = None
            self._supports_transactions = None

    @property
    def engine(self) -> Optional[AsyncEngine]:
        """Get the SQLAlchemy async engine."""
        return self._engine

    @property
    def is_initialized(self) -> bool:
        """Check if database engine is initialized."""
        return self._engine is not None


# Global database connection manager instance
db_manager = DatabaseConnectionManager()


async def init_database(engine: Optional[AsyncEngine] = None) -> None:
    """Initialize the global database connection manager."""
    try:
        logger.info("Starting database initialization...")
        await db_manager.initialize(engine)
        logger.info("✅ Database initialization completed successfully.")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {e}", exc_info=True)
        raise


async def close_database() -> None:
    """Close the global database connection manager."""
    await db_manager.close()


async def get_database_engine() -> AsyncEngine:
    """
    Get the database engine instance.

    Returns:
        AsyncEngine: SQLAlchemy async engine

    Raises:
        RuntimeError: If database is not initialized
    """
    if not db_manager.is_initialized:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    return db_manager.engine


async def database_health_check() -> dict:
    """Perform database health check."""
    return await db_manager.health_check()
