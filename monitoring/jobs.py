"""
============================================================================
PULSEWATCH - HOUSEKEEPING JOBS
============================================================================
A lightweight, asyncio-native runner for periodic background jobs that
run alongside the monitor scheduler. All jobs are coroutines in the same
event loop.

Registered Jobs
---------------
1.  heartbeat_retention     (every MONITOR_CLEANUP_INTERVAL seconds)
    Deletes heartbeats older than MONITOR_HEARTBEAT_RETENTION_DAYS.

2.  maintenance_sync        (every 1 min)
    Reloads maintenance windows and drops those that ended.

3.  health_log              (every 10 min)
    Writes scheduler statistics to the log so operators can verify
    the engine is alive during quiet periods.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.settings import Settings, get_settings
from monitoring.interfaces import HeartbeatStore
from monitoring.maintenance import MaintenanceCalendar
from monitoring.scheduler import MonitorScheduler
from utils.helpers import SystemHelper, TimeHelper
from utils.logger import get_logger, log_execution_time


logger = get_logger("Jobs")


# ============================================================================
# JOB DEFINITION
# ============================================================================

@dataclass
class ScheduledJob:
    """
    Describes a single periodic background job.

    Attributes
    ----------
    name : str
        Human-readable identifier (used in logs).
    interval_seconds : int
        How often the job runs.
    coroutine_factory : Callable
        An async callable (no arguments) that performs the work.
    enabled : bool
        Can be toggled at runtime.
    last_run : Optional[float]
        Epoch timestamp of the last successful execution.
    next_run : float
        Epoch timestamp when the job should next execute.
    run_count : int
        Total number of successful executions since startup.
    error_count : int
        Total number of failed executions since startup.
    """
    name: str
    interval_seconds: int
    coroutine_factory: Callable[[], Awaitable[Any]]
    enabled: bool = True
    last_run: Optional[float] = None
    next_run: float = field(default_factory=time.time)
    run_count: int = 0
    error_count: int = 0


# ============================================================================
# JOB RUNNER
# ============================================================================

class JobRunner:
    """
    Asyncio-based periodic job runner.

    Usage
    -----
        runner = JobRunner()
        runner.register_job("my_job", 300, my_async_func)
        await runner.start()
        # ... later ...
        await runner.stop()
    """

    def __init__(self, tick_interval: float = 2.0):
        self._jobs: Dict[str, ScheduledJob] = {}
        self._running = False
        self._loop_task: Optional[asyncio.Task] = None
        self._job_tasks: set = set()
        self._tick_interval = tick_interval

    # ------------------------------------------------------------------
    # JOB REGISTRATION
    # ------------------------------------------------------------------

    def register_job(
        self,
        name: str,
        interval_seconds: int,
        coroutine_factory: Callable[[], Awaitable[Any]],
        enabled: bool = True,
        run_immediately: bool = False,
    ) -> None:
        """
        Register a new periodic job.

        Parameters
        ----------
        name : str
            Unique job name.
        interval_seconds : int
            Period in seconds.
        coroutine_factory : Callable
            An async callable that takes no arguments.
        enabled : bool
            Whether the job starts enabled.
        run_immediately : bool
            Run on the first tick instead of after one interval.
        """
        if name in self._jobs:
            logger.warning(f"[Jobs] Job '{name}' already registered, overwriting")

        now = time.time()
        self._jobs[name] = ScheduledJob(
            name=name,
            interval_seconds=interval_seconds,
            coroutine_factory=coroutine_factory,
            enabled=enabled,
            next_run=now if run_immediately else now + interval_seconds,
        )
        logger.debug(f"[Jobs] Registered job '{name}' (interval={interval_seconds}s)")

    def enable_job(self, name: str) -> bool:
        """Enable a job by name. Returns True if found."""
        if name in self._jobs:
            self._jobs[name].enabled = True
            return True
        return False

    def disable_job(self, name: str) -> bool:
        """Disable a job by name. Returns True if found."""
        if name in self._jobs:
            self._jobs[name].enabled = False
            return True
        return False

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the runner loop."""
        if self._running:
            logger.warning("JobRunner is already running")
            return
        self._running = True
        self._loop_task = asyncio.create_task(self._main_loop(), name="job-runner")
        logger.info(f"✓ JobRunner started with {len(self._jobs)} jobs")

    async def stop(self) -> None:
        """Stop the runner loop and cancel running jobs."""
        self._running = False
        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        for task in list(self._job_tasks):
            task.cancel()
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)
        logger.info("✓ JobRunner stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def _main_loop(self) -> None:
        """
        Wake up every _tick_interval seconds. For each enabled job whose
        next_run time has arrived, launch it as a background task.
        """
        logger.info("[Jobs] Main loop started")
        while self._running:
            now = time.time()
            for job in self._jobs.values():
                if job.enabled and now >= job.next_run:
                    task = asyncio.create_task(self.run_job(job.name))
                    self._job_tasks.add(task)
                    task.add_done_callback(self._job_tasks.discard)
                    # Advance next_run immediately so we don't re-trigger
                    job.next_run = now + job.interval_seconds

            try:
                await asyncio.sleep(self._tick_interval)
            except asyncio.CancelledError:
                break

        logger.info("[Jobs] Main loop exited")

    # ------------------------------------------------------------------
    # JOB EXECUTION
    # ------------------------------------------------------------------

    async def run_job(self, name: str) -> bool:
        """
        Run a single job now, capturing timing and errors.

        Returns
        -------
        bool
            True when the job completed without raising.
        """
        job = self._jobs[name]
        start_time = time.time()
        try:
            logger.debug(f"[Jobs] Running job '{job.name}'…")
            await job.coroutine_factory()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.error_count += 1
            elapsed = time.time() - start_time
            logger.exception(f"[Jobs] Job '{job.name}' FAILED after {elapsed:.2f}s: {e!r}")
            return False

        elapsed = time.time() - start_time
        job.run_count += 1
        job.last_run = time.time()
        logger.debug(
            f"[Jobs] Job '{job.name}' completed in {elapsed:.2f}s "
            f"(run #{job.run_count})"
        )
        return True

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_job_stats(self) -> List[Dict[str, Any]]:
        """Return status of all registered jobs."""
        stats = []
        for job in self._jobs.values():
            stats.append({
                "name": job.name,
                "interval_seconds": job.interval_seconds,
                "enabled": job.enabled,
                "run_count": job.run_count,
                "error_count": job.error_count,
                "last_run": (
                    datetime.fromtimestamp(job.last_run, tz=timezone.utc).isoformat()
                    if job.last_run else None
                ),
                "next_run": (
                    datetime.fromtimestamp(job.next_run, tz=timezone.utc).isoformat()
                    if job.next_run else None
                ),
            })
        return stats


# ============================================================================
# BUILT-IN JOBS
# ============================================================================

class HousekeepingJobs:
    """
    Built-in maintenance jobs for the monitoring engine.

    Parameters
    ----------
    store : HeartbeatStore
        Store whose old heartbeats are purged.
    scheduler : MonitorScheduler | None
        Source of the statistics written by ``health_log``.
    maintenance : MaintenanceCalendar | None
        Calendar whose expired windows are dropped.
    """

    def __init__(
        self,
        store: HeartbeatStore,
        scheduler: Optional[MonitorScheduler] = None,
        maintenance: Optional[MaintenanceCalendar] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.scheduler = scheduler
        self.maintenance = maintenance

    def register(self, runner: JobRunner) -> None:
        """Register all built-in periodic jobs on ``runner``."""
        runner.register_job(
            "heartbeat_retention",
            interval_seconds=self.settings.monitoring.cleanup_interval,
            coroutine_factory=self.heartbeat_retention,
            run_immediately=True,
        )
        runner.register_job(
            "maintenance_sync",
            interval_seconds=60,
            coroutine_factory=self.maintenance_sync,
            enabled=self.maintenance is not None,
            run_immediately=True,
        )
        runner.register_job(
            "health_log",
            interval_seconds=600,
            coroutine_factory=self.health_log,
            enabled=self.scheduler is not None,
        )

    @log_execution_time
    async def heartbeat_retention(self) -> int:
        """
        Delete heartbeats older than the retention period.

        Returns
        -------
        int
            Number of deleted heartbeats.
        """
        days = self.settings.monitoring.heartbeat_retention_days
        cutoff = TimeHelper.utc_now() - timedelta(days=days)
        deleted = await self.store.delete_before(cutoff)
        if deleted:
            logger.info(f"[Jobs] Deleted {deleted} heartbeats older than {days} days")
        return deleted

    async def maintenance_sync(self) -> int:
        if self.maintenance is None:
            return 0
        live = await self.maintenance.refresh(TimeHelper.utc_now())
        logger.debug(f"[Jobs] {live} maintenance windows loaded")
        return live

    async def health_log(self) -> None:
        if self.scheduler is None:
            return
        stats = self.scheduler.stats()
        logger.info(
            f"[Jobs] ♥ Engine alive — tasks={stats['tasks']} "
            f"running={stats['running']} paused={stats['paused']} "
            f"in_flight={stats['in_flight']} cycles={stats['cycles_completed']} "
            f"errors={stats['cycle_errors']} "
            f"memory={SystemHelper.get_memory_usage()}MB"
        )
