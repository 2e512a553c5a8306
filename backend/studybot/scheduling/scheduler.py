"""
Named cron jobs with an overlap guard.

Wraps APScheduler's AsyncIOScheduler. Every job callback runs through a
guard: if the previous invocation of the same job is still executing, the
new firing is skipped and logged (never queued or retried). Different job
names run concurrently with no ordering between them.

There is no timeout on callbacks, so a callback that hangs (e.g. a stuck
outbound send) suppresses every later tick of that job until it returns.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from studybot.scheduling.state import JobSnapshot, JobStateStore

logger = logging.getLogger(__name__)

JobCallback = Callable[[], Awaitable[None] | None]

# Misfires within this window still run (e.g. after a brief event-loop stall)
_MISFIRE_GRACE_TIME_S = 300


class InvalidCronExpression(ValueError):
    """Raised when a cron expression cannot be parsed."""


@dataclass
class ScheduledJob:
    """A registered job and its runtime bookkeeping."""

    name: str
    cron_expression: str
    timezone: str
    callback: JobCallback
    is_running: bool = False
    paused: bool = False
    runs: int = 0
    skipped: int = 0
    failures: int = 0
    last_run_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)


class JobScheduler:
    """Registry of named cron jobs backed by a single APScheduler instance."""

    def __init__(
        self,
        timezone: str,
        state_store: JobStateStore,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.timezone = timezone
        self._tz = ZoneInfo(timezone)
        self._state_store = state_store
        self._jobs: dict[str, ScheduledJob] = {}
        # Overlap is handled by the guard, so APScheduler must not drop runs itself
        self._scheduler = scheduler or AsyncIOScheduler(
            timezone=self._tz,
            job_defaults={
                "coalesce": True,
                "max_instances": 10,
                "misfire_grace_time": _MISFIRE_GRACE_TIME_S,
            },
        )

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def build_trigger(self, cron_expression: str) -> CronTrigger:
        """Parse a five-field crontab expression in the configured timezone."""
        try:
            return CronTrigger.from_crontab(cron_expression, timezone=self._tz)
        except (ValueError, TypeError) as e:
            raise InvalidCronExpression(f"Invalid cron expression '{cron_expression}': {e}") from e

    def add_job(self, name: str, cron_expression: str, callback: JobCallback) -> ScheduledJob:
        """
        Register and start a recurring job.

        A job already registered under `name` is removed and replaced.
        """
        trigger = self.build_trigger(cron_expression)

        if name in self._jobs:
            logger.info("Job %s already registered, replacing it", name)
            self.remove_job(name)

        job = ScheduledJob(
            name=name,
            cron_expression=cron_expression,
            timezone=self.timezone,
            callback=callback,
        )
        self._jobs[name] = job
        self._scheduler.add_job(
            self._run_guarded,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
        )
        logger.info("Scheduled job %s (%s, %s)", name, cron_expression, self.timezone)
        return job

    def remove_job(self, name: str) -> None:
        """Stop and deregister a job. Unknown names are ignored."""
        job = self._jobs.pop(name, None)
        if job is None:
            return
        try:
            self._scheduler.remove_job(name)
        except JobLookupError:
            logger.warning("Job %s was missing from the underlying scheduler", name)
        logger.info("Removed job %s", name)

    def stop_job(self, name: str) -> None:
        """Suspend firing without deregistering. Same as pause_job."""
        job = self._jobs.get(name)
        if job is None:
            return
        self._scheduler.pause_job(name)
        job.paused = True
        logger.info("Stopped job %s", name)

    def pause_job(self, name: str) -> None:
        """Alias of stop_job."""
        self.stop_job(name)

    def resume_job(self, name: str) -> None:
        """Re-enable a stopped job."""
        job = self._jobs.get(name)
        if job is None:
            return
        self._scheduler.resume_job(name)
        job.paused = False

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _run_guarded(self, name: str) -> bool:
        """Run a job's callback unless it is already running. Returns whether it ran."""
        job = self._jobs.get(name)
        if job is None:
            logger.warning("Job %s fired but is no longer registered", name)
            return False

        if job.is_running:
            job.skipped += 1
            logger.info("Job %s already running. Skipping this run.", name)
            return False

        job.is_running = True
        try:
            result = job.callback()
            if inspect.isawaitable(result):
                await result
            job.runs += 1
        except Exception:
            job.failures += 1
            logger.exception("Error in job %s", name)
        finally:
            job.is_running = False
            job.last_run_at = datetime.now(self._tz)
        return True

    async def fire(self, name: str) -> bool:
        """Invoke a job's guarded callback immediately, outside its schedule."""
        return await self._run_guarded(name)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_jobs(self) -> list[str]:
        return list(self._jobs)

    def get_job(self, name: str) -> ScheduledJob | None:
        return self._jobs.get(name)

    def get_status(self, name: str) -> str:
        job = self._jobs.get(name)
        if job is None:
            return "not_found"
        if job.is_running:
            return "running"
        if job.paused:
            return "paused"
        return "scheduled"

    def get_metrics(self, name: str) -> dict:
        job = self._jobs.get(name)
        if job is None:
            return {}
        return {
            "running": job.is_running,
            "runs": job.runs,
            "skipped": job.skipped,
            "failures": job.failures,
            "last_run_at": job.last_run_at.isoformat() if job.last_run_at else None,
        }

    def next_run_time(self, name: str) -> datetime | None:
        aps_job = self._scheduler.get_job(name)
        if aps_job is None:
            return None
        return getattr(aps_job, "next_run_time", None)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started with %d jobs", len(self._jobs))

    def stop_all(self) -> None:
        for name in list(self._jobs):
            self.stop_job(name)

    def destroy_all(self) -> None:
        for name in list(self._jobs):
            self.remove_job(name)
        self._jobs.clear()

    def save_state(self) -> None:
        """Snapshot every known job name with its running flag."""
        logger.info("Saving job states")
        self._state_store.write(
            [JobSnapshot(name=job.name, running=job.is_running) for job in self._jobs.values()]
        )

    def restore_all_jobs(self) -> list[str]:
        """
        Re-enable every snapshotted job that is registered in code.

        The snapshot holds names only, so callbacks must already be
        registered via add_job. Running flags are reset since no execution
        survives a restart.
        """
        logger.info("Restoring job states")
        restored: list[str] = []
        for snapshot in self._state_store.read():
            job = self._jobs.get(snapshot.name)
            if job is None:
                logger.info("Snapshot job %s is not registered, skipping", snapshot.name)
                continue
            job.is_running = False
            if job.paused:
                self.resume_job(job.name)
            restored.append(job.name)
        logger.info("Restored jobs: %d", len(restored))
        return restored

    async def wait_idle(self, timeout: float) -> bool:
        """Wait until no callback is running. Returns False on timeout."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while any(job.is_running for job in self._jobs.values()):
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(0.05)
        return True

    async def shutdown(self, drain_timeout: float = 0.0) -> None:
        """Drain running callbacks (bounded), snapshot, then tear everything down."""
        if drain_timeout > 0 and not await self.wait_idle(drain_timeout):
            busy = [job.name for job in self._jobs.values() if job.is_running]
            logger.warning("Shutting down with jobs still running: %s", ", ".join(busy))
        self.save_state()
        self.destroy_all()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
