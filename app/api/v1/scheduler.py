# 📄 File: app/api/v1/scheduler.py
# 🧭 Purpose (Layman Explanation):
# Lets an operator see when the expiry sweep and the reminder scan last ran, and run either one
# right away.
# 🧪 Purpose (Technical Summary):
# Endpoints over the running SubscriptionScheduler held on app.state: per-job status and manual
# runs through run_job_now, which waits for any in-flight run of the same job.
# 🔗 Dependencies:
# FastAPI, app.background_jobs.scheduler, subscription_management presentation dependencies
# 🔄 Connected Modules / Calls From:
# app.api.v1.router (mounted at /scheduler)

from typing import List

from fastapi import APIRouter, Depends

from app.background_jobs.scheduler import SubscriptionScheduler
from app.modules.subscription_management.presentation.api.schemas.subscription_schemas import (
    JobRunResponse,
    JobStatusResponse,
)
from app.modules.subscription_management.presentation.dependencies import get_scheduler
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)

scheduler_router = APIRouter()


@scheduler_router.get("/jobs", response_model=List[JobStatusResponse], summary="List scheduler jobs")
async def list_jobs(scheduler: SubscriptionScheduler = Depends(get_scheduler)) -> List[JobStatusResponse]:
    return [JobStatusResponse(**item) for item in scheduler.status()]


@scheduler_router.post("/jobs/{name}/run", response_model=JobRunResponse, summary="Run a job now")
async def run_job(name: str, scheduler: SubscriptionScheduler = Depends(get_scheduler)) -> JobRunResponse:
    """Run a job immediately; failures are reported in the body, not as an HTTP error."""
    job = scheduler.get_job(name)
    logger.info("Manual job run requested", job=name)
    await scheduler.run_job_now(name)
    return JobRunResponse(
        job=name,
        succeeded=job.last_error is None,
        result=job.last_result if job.last_error is None else None,
        error=job.last_error,
    )
