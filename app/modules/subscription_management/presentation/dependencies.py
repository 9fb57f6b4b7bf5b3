# 📄 File: app/modules/subscription_management/presentation/dependencies.py
# 🧭 Purpose (Layman Explanation):
# Puts together the pieces each subscription endpoint needs (the database access, the clock,
# the reminder sender, the running scheduler) so the endpoints themselves stay short.
# 🧪 Purpose (Technical Summary):
# Module-specific FastAPI dependencies constructing repositories and domain services per request
# from the unit-of-work factory, clock, settings and the notifier/scheduler held on app.state.
# Tests override get_unit_of_work_factory, get_clock and get_expiration_notifier.
# 🔗 Dependencies:
# FastAPI, app.shared.infrastructure.database.session, app.shared.core.clock,
# subscription_management infrastructure (repository implementations, notifier)
# 🔄 Connected Modules / Calls From:
# application.handlers.*, presentation.api.v1.subscriptions, app.api.v1.scheduler

from fastapi import Depends, Request

from app.background_jobs.scheduler import SubscriptionScheduler
from app.modules.subscription_management.domain.services.history_service import (
    SubscriptionHistoryService,
)
from app.modules.subscription_management.domain.services.lifecycle_service import (
    SubscriptionLifecycleService,
)
from app.modules.subscription_management.domain.services.package_service import PackageService
from app.modules.subscription_management.infrastructure.database.contributor_repository_impl import (
    ContributorRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.package_repository_impl import (
    PackageRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.database.subscription_repository_impl import (
    SubscriptionRepositoryImpl,
)
from app.modules.subscription_management.infrastructure.notifications.expiration_notifier import (
    ExpirationNotifier,
    build_expiration_notifier,
)
from app.shared.config.settings import Settings, get_settings
from app.shared.core.clock import Clock, get_clock
from app.shared.core.exceptions import SchedulerError
from app.shared.infrastructure.database.session import (
    UnitOfWorkFactory,
    get_unit_of_work_factory,
)


# =========================================================================
# INFRASTRUCTURE DEPENDENCIES
# =========================================================================

def get_expiration_notifier(request: Request) -> ExpirationNotifier:
    """Notifier built at startup, or a fresh one when the app was not started through lifespan."""
    notifier = getattr(request.app.state, "notifier", None)
    return notifier or build_expiration_notifier()


def get_scheduler(request: Request) -> SubscriptionScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise SchedulerError("Scheduler is not configured")
    return scheduler


# =========================================================================
# SERVICE DEPENDENCIES
# =========================================================================

def get_lifecycle_service(
    uow_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
    notifier: ExpirationNotifier = Depends(get_expiration_notifier),
    settings: Settings = Depends(get_settings),
) -> SubscriptionLifecycleService:
    return SubscriptionLifecycleService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        notifier=notifier,
        clock=clock,
        settings=settings,
    )


def get_history_service(
    uow_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> SubscriptionHistoryService:
    return SubscriptionHistoryService(
        uow_factory=uow_factory,
        subscription_repository=SubscriptionRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        clock=clock,
        settings=settings,
    )


def get_package_service(
    uow_factory: UnitOfWorkFactory = Depends(get_unit_of_work_factory),
) -> PackageService:
    return PackageService(uow_factory=uow_factory, package_repository=PackageRepositoryImpl())
