"""
Timer-heap scheduler: cadence, per-monitor serialization, lifecycle and the
concurrency bound. Intervals are fractions of a second.
"""

import asyncio

import pytest

from monitoring.scheduler import MonitorScheduler, TaskState
from monitoring.state_machine import Cadence
from tests.conftest import make_monitor


class Recorder:
    """Cycle callback recording start times and overlap."""

    def __init__(self, cadence=Cadence.NORMAL, hold=0.0, fail=False):
        self.cadence = cadence
        self.hold = hold
        self.fail = fail
        self.calls = []
        self.active = {}
        self.overlaps = 0
        self.cancelled = 0
        self.max_parallel = 0
        self._parallel = 0

    async def __call__(self, monitor, task):
        loop = asyncio.get_running_loop()
        self.calls.append((monitor.id, loop.time(), monitor))
        if self.active.get(monitor.id):
            self.overlaps += 1
        self.active[monitor.id] = True
        self._parallel += 1
        self.max_parallel = max(self.max_parallel, self._parallel)
        try:
            if self.hold:
                await asyncio.sleep(self.hold)
            if self.fail:
                raise RuntimeError("cycle blew up")
            return self.cadence
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self._parallel -= 1
            self.active[monitor.id] = False

    def count(self, monitor_id):
        return sum(1 for call in self.calls if call[0] == monitor_id)


@pytest.fixture
async def make_scheduler(settings):
    created = []

    async def factory(cycle, **kwargs):
        scheduler = MonitorScheduler(cycle, settings, **kwargs)
        await scheduler.start()
        created.append(scheduler)
        return scheduler

    yield factory
    for scheduler in created:
        await scheduler.stop()


async def test_cycles_fire_on_cadence(make_scheduler):
    recorder = Recorder()
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=0.05), delay=0)
    await asyncio.sleep(0.23)

    assert 4 <= recorder.count(1) <= 6
    starts = [t for _, t, _ in recorder.calls]
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert all(gap >= 0.045 for gap in gaps)


async def test_retry_cadence_uses_retry_interval(make_scheduler):
    recorder = Recorder(cadence=Cadence.RETRY)
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=10, retry_interval=0.05), delay=0)
    await asyncio.sleep(0.18)

    assert recorder.count(1) >= 3


async def test_cycles_of_one_monitor_never_overlap(make_scheduler):
    # Cycle takes longer than the interval: the next one starts right after
    recorder = Recorder(hold=0.06)
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=0.02), delay=0)
    await asyncio.sleep(0.3)

    assert recorder.overlaps == 0
    assert recorder.count(1) >= 3


async def test_concurrency_bound_limits_parallel_cycles(make_scheduler):
    recorder = Recorder(hold=0.05)
    scheduler = await make_scheduler(recorder, max_concurrency=2)

    for monitor_id in range(1, 6):
        scheduler.add(make_monitor(monitor_id, interval=10), delay=0)
    await asyncio.sleep(0.3)

    assert recorder.max_parallel == 2
    assert {call[0] for call in recorder.calls} == {1, 2, 3, 4, 5}


async def test_failing_cycle_is_rescheduled(make_scheduler):
    recorder = Recorder(fail=True)
    scheduler = await make_scheduler(recorder)

    task = scheduler.add(make_monitor(1, interval=0.05), delay=0)
    await asyncio.sleep(0.18)

    assert recorder.count(1) >= 3
    assert task.errors >= 3
    assert scheduler.stats()["cycle_errors"] >= 3


async def test_pause_and_resume(make_scheduler):
    recorder = Recorder()
    scheduler = await make_scheduler(recorder)
    monitor = make_monitor(1, interval=0.05)

    scheduler.add(monitor, delay=0)
    await asyncio.sleep(0.07)
    assert scheduler.pause(1) is True
    assert scheduler.get(1).state is TaskState.PAUSED
    paused_at = recorder.count(1)

    await asyncio.sleep(0.15)
    assert recorder.count(1) == paused_at
    assert scheduler.pause(1) is False

    scheduler.resume(monitor.with_changes(name="renamed"), delay=0)
    await asyncio.sleep(0.03)
    assert recorder.count(1) == paused_at + 1
    assert recorder.calls[-1][2].name == "renamed"


async def test_remove_cancels_in_flight_cycle(make_scheduler):
    recorder = Recorder(hold=1.0)
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=0.05), delay=0)
    await asyncio.sleep(0.02)
    assert scheduler.get(1).in_flight

    assert scheduler.remove(1) is True
    await asyncio.sleep(0.02)

    assert recorder.cancelled == 1
    assert 1 not in scheduler
    assert scheduler.remove(1) is False


async def test_update_swaps_snapshot_for_next_cycle(make_scheduler):
    recorder = Recorder()
    scheduler = await make_scheduler(recorder)
    monitor = make_monitor(1, interval=0.05)

    scheduler.add(monitor, delay=0)
    await asyncio.sleep(0.02)
    scheduler.update(monitor.with_changes(config={"url": "https://changed.example"}))
    await asyncio.sleep(0.06)

    assert recorder.calls[0][2].config["url"] == "https://example.com"
    assert recorder.calls[-1][2].config["url"] == "https://changed.example"


async def test_update_rekeys_pending_fire_to_new_interval(make_scheduler):
    recorder = Recorder()
    scheduler = await make_scheduler(recorder)
    monitor = make_monitor(1, interval=10)

    scheduler.add(monitor, delay=0)
    await asyncio.sleep(0.02)
    assert recorder.count(1) == 1

    scheduler.update(monitor.with_changes(interval=0.05))
    await asyncio.sleep(0.2)

    assert recorder.count(1) >= 4


async def test_update_during_cycle_does_not_abort_it(make_scheduler):
    recorder = Recorder(hold=0.08)
    scheduler = await make_scheduler(recorder)
    monitor = make_monitor(1, interval=10)

    scheduler.add(monitor, delay=0)
    await asyncio.sleep(0.02)
    assert scheduler.get(1).in_flight

    scheduler.update(monitor.with_changes(interval=0.05))
    await asyncio.sleep(0.15)

    assert recorder.cancelled == 0
    assert recorder.calls[0][2].interval == 10
    assert recorder.count(1) >= 2
    assert recorder.calls[1][2].interval == 0.05


async def test_slow_cycles_do_not_drift(make_scheduler):
    # Next fire is measured from the cycle start, not its end
    recorder = Recorder(hold=0.03)
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=0.1), delay=0)
    await asyncio.sleep(0.45)

    starts = [t for _, t, _ in recorder.calls]
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert len(starts) >= 4
    assert all(0.095 <= gap < 0.125 for gap in gaps)


async def test_reschedule_moves_next_fire(make_scheduler):
    recorder = Recorder()
    scheduler = await make_scheduler(recorder)

    scheduler.add(make_monitor(1, interval=10), delay=10)
    assert scheduler.reschedule(1, 0.01) is True
    await asyncio.sleep(0.05)

    assert recorder.count(1) == 1
    assert scheduler.reschedule(99, 0.01) is False


async def test_defer_overrides_cadence_once(make_scheduler):
    async def cycle(monitor, task):
        calls.append(asyncio.get_running_loop().time())
        if len(calls) == 1:
            task.defer(0.02)
        return Cadence.NORMAL

    calls = []
    scheduler = await make_scheduler(cycle)

    scheduler.add(make_monitor(1, interval=0.15), delay=0)
    await asyncio.sleep(0.1)

    assert len(calls) == 2
    assert calls[1] - calls[0] < 0.1


async def test_add_twice_keeps_a_single_task(make_scheduler):
    scheduler = await make_scheduler(Recorder())

    first = scheduler.add(make_monitor(1, interval=10), delay=10)
    second = scheduler.add(make_monitor(1, name="again", interval=10), delay=10)

    assert first is second
    assert len(scheduler) == 1
    assert first.monitor.name == "again"


async def test_stop_cancels_everything(settings):
    recorder = Recorder(hold=1.0)
    scheduler = MonitorScheduler(recorder, settings)
    await scheduler.start()

    scheduler.add(make_monitor(1, interval=10), delay=0)
    scheduler.add(make_monitor(2, interval=10), delay=0)
    await asyncio.sleep(0.02)
    await scheduler.stop()

    assert recorder.cancelled == 2
    assert len(scheduler) == 0
    assert scheduler.is_running is False
