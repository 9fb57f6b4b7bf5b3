# 📄 File: app/shared/infrastructure/database/session.py
#
# 🧭 Purpose (Layman Explanation):
# Manages database sessions (like conversations with the database) and groups the several
# writes of one subscription change so they either all happen or none of them do.
#
# 🧪 Purpose (Technical Summary):
# Async SQLAlchemy session factory plus the unit-of-work abstraction used by lifecycle
# services. Transactional backends get a single commit/rollback; backends without
# multi-statement transactions get sequential commits with compensating actions.
#
# 🔗 Dependencies:
# - sqlalchemy.ext.asyncio (AsyncSession, async_sessionmaker)
# - app/shared/infrastructure/database/connection.py (database engine, transaction probe)
# - app/shared/core/exceptions.py (DatabaseError, TransactionError)
#
# 🔄 Connected Modules / Calls From:
# - Subscription lifecycle, package and history services (unit of work)
# - app.main (session manager initialization)
# - Presentation dependencies (unit of work factory)

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from sqlalchemy import exc
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.shared.config.settings import get_settings
from app.shared.core.exceptions import (
    DatabaseError,
    SubscriptionEngineException,
    TransactionError,
)
from app.shared.infrastructure.database.connection import (
    db_manager,
    get_database_engine,
    probe_transaction_support,
)
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

Compensation = Callable[[AsyncSession], Awaitable[Any]]


# =============================================================================
# UNIT OF WORK
# =============================================================================

class UnitOfWork(ABC):
    """
    Groups the writes of one business operation.

    Usage:
        async with session_manager.unit_of_work("confirm_payment") as uow:
            await repo(uow.session).update(...)
            await uow.checkpoint("activate subscription", compensate=undo)
    """

    transactional: bool = True

    def __init__(self, session_factory: async_sessionmaker, operation: str):
        self._session_factory = session_factory
        self.operation = operation
        self._session: Optional[AsyncSession] = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise DatabaseError("Unit of work used outside its context", operation=self.operation)
        return self._session

    async def __aenter__(self) -> "UnitOfWork":
        self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> bool:
        try:
            if exc_value is None:
                await self._complete()
            else:
                await self._abort(exc_value)
        finally:
            await self._session.close()
            self._session = None
        return False

    @abstractmethod
    async def checkpoint(self, step: str, compensate: Optional[Compensation] = None) -> None:
        """Mark the end of one write step."""

    @abstractmethod
    async def _complete(self) -> None:
        ...

    @abstractmethod
    async def _abort(self, error: BaseException) -> None:
        ...


class TransactionalUnitOfWork(UnitOfWork):
    """All steps share one transaction; nothing persists unless every step succeeds."""

    transactional = True

    async def checkpoint(self, step: str, compensate: Optional[Compensation] = None) -> None:
        try:
            await self.session.flush()
        except exc.SQLAlchemyError as e:
            raise DatabaseError(f"Step '{step}' failed: {e}", operation=self.operation) from e

    async def _complete(self) -> None:
        try:
            await self.session.commit()
            logger.debug("Database transaction committed", operation=self.operation)
        except exc.SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Commit failed, transaction rolled back",
                operation=self.operation,
                error=str(e),
            )
            raise TransactionError(
                f"Transaction failed: {e}", operation=self.operation, partial=False
            ) from e

    async def _abort(self, error: BaseException) -> None:
        await self.session.rollback()
        if isinstance(error, SubscriptionEngineException):
            return

        logger.error(
            "Unexpected error, transaction rolled back",
            operation=self.operation,
            error=str(error),
        )
        raise TransactionError(
            f"Transaction failed: {error}", operation=self.operation, partial=False
        ) from error


class SequentialUnitOfWork(UnitOfWork):
    """
    Commits after every step and records how to undo it.

    On failure the recorded compensations run in reverse order. When all of
    them succeed the original error propagates unchanged; when any fails a
    TransactionError with ``partial=True`` is raised.
    """

    transactional = False

    def __init__(self, session_factory: async_sessionmaker, operation: str):
        super().__init__(session_factory, operation)
        self._completed: List[Tuple[str, Optional[Compensation]]] = []

    async def checkpoint(self, step: str, compensate: Optional[Compensation] = None) -> None:
        try:
            await self.session.commit()
        except exc.SQLAlchemyError as e:
            raise DatabaseError(f"Step '{step}' failed: {e}", operation=self.operation) from e
        self._completed.append((step, compensate))
        logger.debug("Sequential step committed", operation=self.operation, step=step)

    async def _complete(self) -> None:
        try:
            await self.session.commit()
        except exc.SQLAlchemyError as e:
            await self.session.rollback()
            failed = await self._compensate()
            raise TransactionError(
                f"Transaction failed: {e}",
                operation=self.operation,
                partial=bool(failed),
                failed_compensations=failed,
            ) from e

    async def _abort(self, error: BaseException) -> None:
        await self.session.rollback()
        failed = await self._compensate()

        if failed:
            logger.critical(
                "Compensation incomplete, data may be partially written",
                operation=self.operation,
                failed_compensations=failed,
                error=str(error),
            )
            raise TransactionError(
                f"Transaction failed after partial writes: {error}",
                operation=self.operation,
                partial=True,
                failed_compensations=failed,
            ) from error

        if isinstance(error, SubscriptionEngineException):
            return

        raise TransactionError(
            f"Transaction failed: {error}", operation=self.operation, partial=False
        ) from error

    async def _compensate(self) -> List[str]:
        failed: List[str] = []
        while self._completed:
            step, compensate = self._completed.pop()
            if compensate is None:
                failed.append(step)
                continue
            try:
                await compensate(self.session)
                await self.session.commit()
                logger.info("Compensated step", operation=self.operation, step=step)
            except Exception as e:
                await self.session.rollback()
                logger.error(
                    "Compensation failed",
                    operation=self.operation,
                    step=step,
                    error=str(e),
                )
                failed.append(step)
        return failed


UnitOfWorkFactory = Callable[[str], UnitOfWork]


# =============================================================================
# SESSION MANAGER
# =============================================================================

class DatabaseSessionManager:
    """
    Manages the session factory and decides which unit of work to hand out.
    """

    def __init__(self):
        self._session_factory: Optional[async_sessionmaker] = None
        self._transactional = True
        self._initialized = False

    async def initialize(
        self,
        engine: Optional[AsyncEngine] = None,
        transaction_mode: Optional[str] = None,
    ) -> None:
        """
        Initialize the session factory.

        Args:
            engine: Engine to bind; defaults to the global connection manager's engine
            transaction_mode: "auto", "transactional" or "sequential"; defaults to settings
        """
        try:
            mode = transaction_mode or get_settings().DB_TRANSACTION_MODE
            if engine is None:
                engine = await get_database_engine()
                probe = db_manager.probe_transaction_support
            else:
                probe = lambda: probe_transaction_support(engine)  # noqa: E731

            self._session_factory = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,  # Keep objects accessible after commit
                autoflush=True,
            )

            if mode == "auto":
                self._transactional = await probe()
            else:
                self._transactional = mode == "transactional"

            self._initialized = True
            logger.info(
                "Database session factory initialized",
                transaction_mode=mode,
                transactional=self._transactional,
            )

        except exc.SQLAlchemyError as e:
            logger.error(f"Failed to initialize database session factory: {e}")
            raise DatabaseError(f"Session initialization failed: {e}") from e

    def unit_of_work(self, operation: str) -> UnitOfWork:
        """Create a unit of work for ``operation`` matching the backend's capabilities."""
        if not self._initialized or self._session_factory is None:
            raise DatabaseError("Session manager not initialized")

        if self._transactional:
            return TransactionalUnitOfWork(self._session_factory, operation)
        return SequentialUnitOfWork(self._session_factory, operation)

    @property
    def transactional(self) -> bool:
        return self._transactional

    def is_initialized(self) -> bool:
        """Check if session manager is initialized."""
        return self._initialized


# Global session manager instance
session_manager = DatabaseSessionManager()


async def initialize_sessions() -> None:
    """Initialize the global database session manager."""
    await session_manager.initialize()


def get_unit_of_work_factory() -> UnitOfWorkFactory:
    """FastAPI dependency returning the global unit-of-work factory."""
    return session_manager.unit_of_work
