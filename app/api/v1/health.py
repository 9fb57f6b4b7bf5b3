# 📄 File: app/api/v1/health.py
# 🧭 Purpose (Layman Explanation):
# A checkup for the service: is the database reachable, are the background jobs running, and
# does the machine still have room to breathe.
# 🧪 Purpose (Technical Summary):
# Health check endpoints for load balancers and monitoring: basic, detailed (database, scheduler,
# system resources), liveness and readiness probes.
# 🔗 Dependencies:
# FastAPI, psutil, app.shared.infrastructure.database.connection
# 🔄 Connected Modules / Calls From:
# app.main, monitoring systems, load balancers

import platform
import sys
from datetime import datetime, timezone
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.shared.config.settings import get_settings
from app.shared.infrastructure.database.connection import database_health_check as db_health_check
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

# Create router for health endpoints
health_router = APIRouter()

# Application start time for uptime calculation
_app_start_time = datetime.now(timezone.utc)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _scheduler_health(request: Request) -> Dict[str, Any]:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return {"status": "disabled", "jobs": []}
    jobs = scheduler.status()
    failing = [job["name"] for job in jobs if job["last_error"]]
    return {
        "status": "degraded" if failing else ("healthy" if scheduler.is_running else "stopped"),
        "running": scheduler.is_running,
        "failing_jobs": failing,
        "jobs": jobs,
    }


def _system_health() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    return {
        "status": "healthy" if memory.percent < 95 else "degraded",
        "python_version": sys.version.split()[0],
        "platform": platform.platform(),
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": memory.percent,
    }


@health_router.get("/health", summary="Basic Health Check")
async def health_check(request: Request) -> JSONResponse:
    """
    Database and scheduler status.

    Returns 503 when the database is unreachable.
    """
    database = await db_health_check()
    scheduler = _scheduler_health(request)
    healthy = database.get("status") == "healthy"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": _now(),
            "service": "contributor-subscriptions",
            "version": get_settings().APP_VERSION,
            "database": database.get("status"),
            "scheduler": scheduler["status"],
        },
    )


@health_router.get("/health/detailed", summary="Detailed Health Check")
async def detailed_health_check(request: Request) -> JSONResponse:
    overall_status = "healthy"
    components: Dict[str, Any] = {}

    components["database"] = await db_health_check()
    if components["database"].get("status") != "healthy":
        overall_status = "unhealthy"

    components["scheduler"] = _scheduler_health(request)
    if components["scheduler"]["status"] == "degraded" and overall_status == "healthy":
        overall_status = "degraded"

    try:
        components["system"] = _system_health()
    except (OSError, RuntimeError) as e:
        logger.warning("System metrics unavailable", error=str(e))
        components["system"] = {"status": "unknown", "error": str(e)}

    return JSONResponse(
        status_code=503 if overall_status == "unhealthy" else 200,
        content={
            "status": overall_status,
            "timestamp": _now(),
            "uptime_seconds": int((datetime.now(timezone.utc) - _app_start_time).total_seconds()),
            "components": components,
        },
    )


@health_router.get("/health/live", summary="Liveness Probe")
async def liveness_probe() -> Dict[str, str]:
    return {"status": "alive", "timestamp": _now()}


@health_router.get("/health/ready", summary="Readiness Probe")
async def readiness_probe() -> JSONResponse:
    database = await db_health_check()
    ready = database.get("status") == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "timestamp": _now()},
    )
