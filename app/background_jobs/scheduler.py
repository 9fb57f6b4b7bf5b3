# 📄 File: app/background_jobs/scheduler.py
#
# 🧭 Purpose (Layman Explanation):
# The app's alarm clock. Once a day it expires subscriptions whose time is up, and every hour
# it looks for subscriptions about to run out so reminders can go out. Each alarm can be
# switched off, on, or rung immediately without touching the others.
#
# 🧪 Purpose (Technical Summary):
# Single in-process asyncio scheduler owning named jobs with configurable cadences
# (DailyAt in a given timezone, Every fixed interval). Runs of a job never overlap, a
# failing run is logged without stopping its loop, and an in-flight run finishes before
# its job is stopped.
#
# 🔗 Dependencies:
# - asyncio, zoneinfo
# - app.shared.core.clock (time source)
# - app.shared.utils.logging (job context, structured logs)
#
# 🔄 Connected Modules / Calls From:
# - app.main (lifespan start/stop)
# - app/api/v1/scheduler.py (job status and manual runs)
# - SubscriptionLifecycleService (job bodies)

import asyncio
from abc import ABC, abstractmethod
from contextlib import suppress
from datetime import datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.shared.config.settings import Settings, get_settings
from app.shared.core.clock import Clock, get_clock
from app.shared.core.exceptions import SchedulerError
from app.shared.utils.logging import get_logger, log_context

logger = get_logger(__name__)

SWEEP_JOB = "daily-expiry-sweep"
SCAN_JOB = "hourly-near-expiry-scan"

JobFunc = Callable[[], Awaitable[Any]]


# =============================================================================
# CADENCES
# =============================================================================

class Cadence(ABC):
    """When a job runs next."""

    @abstractmethod
    def next_run(self, now: datetime) -> datetime:
        """First run strictly after ``now`` (aware UTC)."""

    @abstractmethod
    def describe(self) -> str:
        ...


class DailyAt(Cadence):
    """Once a day at a fixed wall-clock time in ``tz``."""

    def __init__(self, at: time, tz: str = "UTC"):
        try:
            self.tz = ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise SchedulerError(f"Unknown timezone: {tz}") from e
        self.at = at

    def next_run(self, now: datetime) -> datetime:
        local_now = now.astimezone(self.tz)
        candidate = datetime.combine(local_now.date(), self.at, tzinfo=self.tz)
        if candidate <= local_now:
            candidate = datetime.combine(local_now.date() + timedelta(days=1), self.at, tzinfo=self.tz)
        return candidate.astimezone(timezone.utc)

    def describe(self) -> str:
        return f"daily at {self.at.strftime('%H:%M')} {self.tz.key}"


class Every(Cadence):
    """Fixed interval between runs."""

    def __init__(self, interval: timedelta):
        if interval.total_seconds() <= 0:
            raise SchedulerError("Interval must be positive")
        self.interval = interval

    def next_run(self, now: datetime) -> datetime:
        return now + self.interval

    def describe(self) -> str:
        return f"every {int(self.interval.total_seconds())}s"


# =============================================================================
# JOBS
# =============================================================================

class ScheduledJob:
    """
    A named unit of periodic work.

    ``run_once`` serialises runs through a lock so a manual run and a
    scheduled tick never execute concurrently.
    """

    def __init__(self, name: str, cadence: Cadence, func: JobFunc):
        self.name = name
        self.cadence = cadence
        self.func = func

        self.last_run_at: Optional[datetime] = None
        self.last_result: Any = None
        self.last_error: Optional[str] = None
        self.next_run_at: Optional[datetime] = None
        self.run_count = 0

        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._current_run: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, clock: Clock) -> Any:
        async with self._lock:
            with log_context(job_name=self.name):
                started = clock.now()
                logger.info("Scheduled job started", job=self.name)
                try:
                    result = await self.func()
                except Exception as e:
                    self.last_error = str(e)
                    logger.error("Scheduled job failed", exc_info=True, job=self.name, error=str(e))
                    result = None
                else:
                    self.last_error = None
                    self.last_result = result.model_dump(mode="json") if hasattr(result, "model_dump") else result
                    logger.info("Scheduled job finished", job=self.name)
                finally:
                    self.last_run_at = started
                    self.run_count += 1
                return result

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "cadence": self.cadence.describe(),
            "running": self.running,
            "run_count": self.run_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at and self.running else None,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }


# =============================================================================
# SCHEDULER
# =============================================================================

class SubscriptionScheduler:
    """
    One scheduler, many named jobs.

    Assumes a single instance per deployment; there is no distributed lock.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.clock = clock or get_clock()
        self._sleep = sleep
        self._jobs: Dict[str, ScheduledJob] = {}
        self._started = False

    def add_job(self, job: ScheduledJob) -> ScheduledJob:
        if job.name in self._jobs:
            raise SchedulerError("Job already registered", job_name=job.name)
        self._jobs[job.name] = job
        return job

    def get_job(self, name: str) -> ScheduledJob:
        job = self._jobs.get(name)
        if job is None:
            raise SchedulerError("Unknown job", job_name=name)
        return job

    @property
    def job_names(self) -> List[str]:
        return list(self._jobs)

    @property
    def is_running(self) -> bool:
        return any(job.running for job in self._jobs.values())

    async def start(self, run_sweep_on_start: bool = True) -> None:
        """Optionally sweep immediately, then start every job's loop."""
        if self._started:
            logger.warning("Scheduler already started")
            return

        if run_sweep_on_start and SWEEP_JOB in self._jobs:
            await self.run_job_now(SWEEP_JOB)

        for name in self._jobs:
            self.start_job(name)
        self._started = True
        logger.info("Scheduler started", jobs=self.job_names)

    async def stop(self) -> None:
        for name in self._jobs:
            await self.stop_job(name)
        self._started = False
        logger.info("Scheduler stopped")

    def start_job(self, name: str) -> None:
        job = self.get_job(name)
        if job.running:
            return
        job._task = asyncio.create_task(self._loop(job), name=f"scheduler:{name}")
        logger.info("Job loop started", job=name, cadence=job.cadence.describe())

    async def stop_job(self, name: str) -> None:
        """Stop a job's loop; a run already in progress is allowed to finish."""
        job = self.get_job(name)
        task = job._task
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if job._current_run is not None and not job._current_run.done():
            await job._current_run
        job._task = None
        job.next_run_at = None
        logger.info("Job loop stopped", job=name)

    async def restart_job(self, name: str) -> None:
        await self.stop_job(name)
        self.start_job(name)

    async def run_job_now(self, name: str) -> Any:
        """Run a job immediately, waiting for any in-flight run of it first."""
        job = self.get_job(name)
        return await job.run_once(self.clock)

    def status(self) -> List[Dict[str, Any]]:
        return [job.status() for job in self._jobs.values()]

    async def _loop(self, job: ScheduledJob) -> None:
        while True:
            now = self.clock.now()
            job.next_run_at = job.cadence.next_run(now)
            delay = max(0.0, (job.next_run_at - now).total_seconds())
            await self._sleep(delay)

            job._current_run = asyncio.ensure_future(job.run_once(self.clock))
            # Cancelling the loop must not abort a run mid-flight
            await asyncio.shield(job._current_run)


def build_subscription_scheduler(
    lifecycle_service,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> SubscriptionScheduler:
    """Scheduler with the daily expiry sweep and the near-expiry scan."""
    settings = settings or get_settings()
    scheduler = SubscriptionScheduler(clock=clock or lifecycle_service.clock)

    scheduler.add_job(ScheduledJob(
        SWEEP_JOB,
        DailyAt(settings.expiry_sweep_time, settings.SCHEDULER_TIMEZONE),
        lifecycle_service.check_expired_subscriptions,
    ))
    scheduler.add_job(ScheduledJob(
        SCAN_JOB,
        Every(timedelta(minutes=settings.NEAR_EXPIRY_SCAN_INTERVAL_MINUTES)),
        lifecycle_service.scan_near_expiry,
    ))
    return scheduler
