# 📄 File: app/main.py
#
# 🧭 Purpose (Layman Explanation):
# The control center that starts the subscription service: it connects to the database, winds
# up the background alarm clock for expiries and reminders, and opens the web endpoints.
#
# 🧪 Purpose (Technical Summary):
# FastAPI application factory and entry point: lifespan-managed database, unit-of-work factory,
# notifier and SubscriptionScheduler; middleware setup, router registration and exception
# handlers rendering SubscriptionEngineException as JSON.
#
# 🔗 Dependencies:
# - FastAPI framework, uvicorn
# - app.shared.config.settings
# - app.shared.infrastructure.database (connection, session)
# - app.background_jobs.scheduler
# - app.modules.subscription_management (services, repositories, notifier)
#
# 🔄 Connected Modules / Calls From:
# - uvicorn server startup
# - Docker container entry point

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.api.middleware import RequestLoggingMiddleware
from app.api.v1.health import health_router
from app.api.v1.router import api_v1_router
from app.background_jobs.scheduler import build_subscription_scheduler
from app.modules.subscription_management.domain.services.lifecycle_service import (
    SubscriptionLifecycleService,
)
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
    build_expiration_notifier,
)
from app.shared.config.settings import get_settings
from app.shared.core.clock import get_clock
from app.shared.core.exceptions import SubscriptionEngineException
from app.shared.infrastructure.database.connection import close_database, init_database
from app.shared.infrastructure.database.session import session_manager
from app.shared.utils.logging import (
    get_logger,
    log_shutdown_event,
    log_startup_event,
    setup_logging,
)

# Get application settings
settings = get_settings()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Startup: logging, database, unit-of-work factory, notifier, scheduler.
    Shutdown: stop the scheduler (in-flight runs finish), then close the database.
    """
    setup_logging()
    logger.info("Contributor subscriptions API starting up")

    await init_database()
    await session_manager.initialize()
    logger.info("Database and session manager initialized", transactional=session_manager.transactional)

    notifier = build_expiration_notifier()
    lifecycle_service = SubscriptionLifecycleService(
        uow_factory=session_manager.unit_of_work,
        subscription_repository=SubscriptionRepositoryImpl(),
        package_repository=PackageRepositoryImpl(),
        contributor_repository=ContributorRepositoryImpl(),
        notifier=notifier,
        clock=get_clock(),
        settings=settings,
    )
    scheduler = build_subscription_scheduler(lifecycle_service, settings=settings)

    app.state.notifier = notifier
    app.state.scheduler = scheduler

    try:
        if settings.scheduler_active:
            await scheduler.start(run_sweep_on_start=settings.SCHEDULER_RUN_ON_STARTUP)
        elif settings.SCHEDULER_ENABLED:
            logger.warning(
                "Scheduler not started: one scheduler per worker would double-process jobs",
                workers=settings.uvicorn_workers,
            )
        else:
            logger.info("Scheduler disabled; jobs can still be run manually")

        log_startup_event(settings.APP_NAME, settings.APP_VERSION, extra={"jobs": scheduler.job_names})
        yield  # Application is running

    finally:
        logger.info("Contributor subscriptions API shutting down")
        await scheduler.stop()
        await close_database()
        log_shutdown_event(settings.APP_NAME)


def create_application() -> FastAPI:
    """
    Application factory function.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    # =========================================================================
    # MIDDLEWARE CONFIGURATION
    # =========================================================================

    if settings.ENVIRONMENT != "test":
        app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # =========================================================================
    # ROUTER REGISTRATION
    # =========================================================================

    app.include_router(health_router, tags=["Health Check"])
    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    @app.exception_handler(SubscriptionEngineException)
    async def subscription_engine_exception_handler(
        request: Request,
        exc: SubscriptionEngineException,
    ) -> JSONResponse:
        """Render domain exceptions with their HTTP status."""
        if exc.status_code >= 500:
            logger.error("Request failed", error_code=exc.error_code, error=exc.message)
        body = exc.to_dict()
        body["error"]["request_id"] = getattr(request.state, "request_id", None)
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle 500 Internal Server Error."""
        logger.error(f"Internal server error: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An internal server error occurred",
                    "details": {"error_type": type(exc).__name__} if settings.DEBUG else {},
                    "status_code": 500,
                    "request_id": getattr(request.state, "request_id", None),
                }
            },
        )

    # =========================================================================
    # ROOT ENDPOINTS
    # =========================================================================

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": settings.APP_DESCRIPTION,
            "health_check": "/health",
            "api_base": settings.API_V1_PREFIX,
        }

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app


# Create the FastAPI application
app = create_application()


def main():
    """Run the application with uvicorn (development entry point)."""
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD and settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
        workers=settings.uvicorn_workers,
    )


if __name__ == "__main__":
    main()
