"""
Job runner and the built-in housekeeping jobs.
"""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

from monitoring.jobs import HousekeepingJobs, JobRunner
from monitoring.maintenance import MaintenanceCalendar, MaintenanceWindow
from monitoring.models import MonitorStatus
from tests.conftest import make_heartbeat
from utils.helpers import TimeHelper


class TestJobRunner:
    async def test_run_job_counts_success_and_failure(self):
        async def fine():
            return None

        async def broken():
            raise RuntimeError("disk full")

        runner = JobRunner()
        runner.register_job("fine", 60, fine)
        runner.register_job("broken", 60, broken)

        assert await runner.run_job("fine") is True
        assert await runner.run_job("broken") is False

        stats = {job["name"]: job for job in runner.get_job_stats()}
        assert stats["fine"]["run_count"] == 1
        assert stats["fine"]["last_run"] is not None
        assert stats["broken"]["error_count"] == 1
        assert stats["broken"]["last_run"] is None

    async def test_loop_runs_due_jobs_only(self):
        calls = []

        async def job():
            calls.append("due")

        async def later():
            calls.append("later")

        async def disabled():
            calls.append("disabled")

        runner = JobRunner(tick_interval=0.01)
        runner.register_job("due", 3600, job, run_immediately=True)
        runner.register_job("later", 3600, later)
        runner.register_job("disabled", 3600, disabled, enabled=False, run_immediately=True)

        await runner.start()
        await asyncio.sleep(0.05)
        await runner.stop()

        assert calls == ["due"]

    def test_enable_and_disable(self):
        async def job():
            return None

        runner = JobRunner()
        runner.register_job("job", 60, job)

        assert runner.disable_job("job") is True
        assert runner.get_job_stats()[0]["enabled"] is False
        assert runner.enable_job("job") is True
        assert runner.enable_job("missing") is False


class TestHousekeeping:
    async def test_retention_deletes_old_heartbeats(self, store, settings):
        now = TimeHelper.utc_now()
        old = now - timedelta(days=settings.monitoring.heartbeat_retention_days + 1)
        await store.append(make_heartbeat(1, MonitorStatus.UP, 0, 60, time=old, end_time=old))
        await store.append(make_heartbeat(1, MonitorStatus.UP, 0, 60, time=now, end_time=now))

        deleted = await HousekeepingJobs(store, settings=settings).heartbeat_retention()

        assert deleted == 1
        assert len(store.all(1)) == 1

    async def test_maintenance_sync_drops_expired_windows(self, store, settings):
        now = TimeHelper.utc_now()
        calendar = MaintenanceCalendar()
        calendar.add_window(MaintenanceWindow(1, "old", now - timedelta(hours=2), now - timedelta(hours=1)))
        calendar.add_window(MaintenanceWindow(2, "now", now - timedelta(hours=1), now + timedelta(hours=1)))

        live = await HousekeepingJobs(store, maintenance=calendar, settings=settings).maintenance_sync()

        assert live == 1
        assert [w.id for w in calendar.windows] == [2]

    async def test_register_enables_jobs_that_have_collaborators(self, store, settings):
        runner = JobRunner()
        HousekeepingJobs(store, scheduler=None, maintenance=None, settings=settings).register(runner)

        enabled = {job["name"]: job["enabled"] for job in runner.get_job_stats()}
        assert enabled == {"heartbeat_retention": True, "maintenance_sync": False, "health_log": False}

    async def test_health_log_reads_scheduler_stats(self, store, settings):
        scheduler = MagicMock()
        scheduler.stats.return_value = {
            "tasks": 2, "running": 2, "paused": 0, "in_flight": 0,
            "cycles_completed": 10, "cycle_errors": 1,
        }

        await HousekeepingJobs(store, scheduler=scheduler, settings=settings).health_log()

        scheduler.stats.assert_called_once()
