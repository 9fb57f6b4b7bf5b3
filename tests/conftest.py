# 📄 File: tests/conftest.py
#
# 🧭 Purpose (Layman Explanation):
# Shared test setup: an in-memory database, a clock the tests can move by hand, and a fake
# reminder sender that simply remembers what it was asked to send.
#
# 🧪 Purpose (Technical Summary):
# pytest fixtures wiring the subscription services to an aiosqlite StaticPool engine, a
# FixedClock and a RecordingNotifier. The unit-of-work factory is parametrized so service
# tests run against both the transactional and the sequential (compensating) strategy.
#
# 🔗 Dependencies:
# - pytest, pytest-asyncio (asyncio_mode=auto)
# - SQLAlchemy async engine + aiosqlite
# - httpx for API tests
#
# 🔄 Connected Modules / Calls From:
# - every module under tests/

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("NOTIFICATIONS_BACKEND", "log")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.modules.subscription_management.domain.models.contributor import Contributor  # noqa: E402
from app.modules.subscription_management.domain.services.history_service import (  # noqa: E402
    SubscriptionHistoryService,
)
from app.modules.subscription_management.domain.services.lifecycle_service import (  # noqa: E402
    SubscriptionLifecycleService,
)
from app.modules.subscription_management.domain.services.package_service import PackageService  # noqa: E402
from app.modules.subscription_management.infrastructure.database import models  # noqa: E402,F401
from app.modules.subscription_management.infrastructure.database.contributor_repository_impl import (  # noqa: E402
    ContributorRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.package_repository_impl import (  # noqa: E402
    PackageRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.subscription_repository_impl import (  # noqa: E402
    SubscriptionRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.notifications.expiration_notifier import (  # noqa: E402
    ExpirationNotifier,
)
from app.shared.config.settings import get_settings  # noqa: E402
from app.shared.core.clock import FixedClock  # noqa: E402
from app.shared.infrastructure.database.connection import Base  # noqa: E402
from app.shared.infrastructure.database.session import DatabaseSessionManager  # noqa: E402

START = datetime(2024, 1, 31, 10, 0, tzinfo=timezone.utc)


class RecordingNotifier(ExpirationNotifier):
    """Keeps every reminder it is asked to send; optionally fails after recording."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_expiration_reminder(
        self, subscription_id, threshold, days_remaining, contributor_id=None, end_date=None
    ):
        self.sent.append({
            "subscription_id": subscription_id,
            "threshold": threshold,
            "days_remaining": days_remaining,
            "contributor_id": contributor_id,
        })
        if self.fail:
            raise RuntimeError("notification channel unavailable")


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(params=["transactional", "sequential"])
async def session_manager(request, engine):
    manager = DatabaseSessionManager()
    await manager.initialize(engine=engine, transaction_mode=request.param)
    return manager


@pytest.fixture
async def transactional_manager(engine):
    manager = DatabaseSessionManager()
    await manager.initialize(engine=engine, transaction_mode="transactional")
    return manager


@pytest.fixture
def uow_factory(session_manager):
    return session_manager.unit_of_work


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    return get_settings()


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def lifecycle_service(uow_factory, clock, notifier, settings):
    return SubscriptionLifecycleService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        notifier=notifier,
        clock=clock,
        settings=settings,
    )


@pytest.fixture
def history_service(uow_factory, clock, settings):
    return SubscriptionHistoryService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        clock=clock,
        settings=settings,
    )


@pytest.fixture
def package_service(uow_factory):
    return PackageService(uow_factory, PackageRepositoryImpl())


# =============================================================================
# DATA
# =============================================================================

@pytest.fixture
def make_contributor(uow_factory):
    counter = {"n": 0}

    async def _make(name: str = "Amina Diallo") -> Contributor:
        counter["n"] += 1
        async with uow_factory("seed_contributor") as uow:
            return await ContributorRepositoryImpl().create(
                uow.session,
                Contributor(name=name, email=f"contributor{counter['n']}@example.org"),
            )

    return _make


@pytest.fixture
async def contributor(make_contributor):
    return await make_contributor()


@pytest.fixture
async def basic_package(package_service):
    return await package_service.create_package({
        "name": "Basic Monthly",
        "price": Decimal("5000"),
        "duration": 1,
        "duration_unit": "months",
        "tier": "basic",
        "max_users": 5,
        "max_following": 50,
        "max_activities": 20,
        "max_audiences": 3,
        "max_donations": 100,
        "max_pledges": 100,
        "max_reports": 10,
        "max_beneficiaries": 200,
    })


@pytest.fixture
async def premium_package(package_service):
    return await package_service.create_package({
        "name": "Premium Yearly",
        "price": Decimal("50000"),
        "duration": 1,
        "duration_unit": "years",
        "tier": "premium",
        "max_users": "unlimited",
        "max_following": "infinite",
        "max_activities": 500,
        "max_audiences": 50,
        "max_donations": "unlimited",
        "max_pledges": "unlimited",
        "max_reports": 100,
        "max_beneficiaries": "unlimited",
        "max_projects": 25,
        "storage_limit": 100,
        "api_calls_limit": "unlimited",
        "max_free_trial_duration": 14,
    })


@pytest.fixture
async def daily_package(package_service):
    return await package_service.create_package({
        "name": "Day Pass",
        "price": Decimal("500"),
        "duration": 1,
        "duration_unit": "days",
        "tier": "basic",
        "max_users": 2,
    })


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def api_app(transactional_manager, clock, notifier):
    from app.main import create_application
    from app.modules.subscription_management.presentation.dependencies import get_expiration_notifier
    from app.shared.core.clock import get_clock
    from app.shared.infrastructure.database.session import get_unit_of_work_factory

    app = create_application()
    app.dependency_overrides[get_unit_of_work_factory] = lambda: transactional_manager.unit_of_work
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_expiration_notifier] = lambda: notifier

    return app


@pytest.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
