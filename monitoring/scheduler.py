"""
============================================================================
PULSEWATCH - MONITOR SCHEDULER
============================================================================
Owns one MonitorTask per active monitor and fires probe cycles on time.

Architecture
------------
MonitorScheduler
├── _heap               ← min-heap of (fire_at, seq, monitor_id, generation)
├── _timer_loop()       ← single coroutine popping due entries
├── _launch()           ← one asyncio.Task per due cycle
├── _run_cycle()        ← bounded by asyncio.Semaphore, serialized per
│                          monitor by the task lock, calls the cycle callback
└── _push()             ← next fire = cycle start + cadence

An idle monitor costs a heap entry, not a coroutine. Stale heap entries
are skipped by comparing the entry's generation with the task's.

Task states: CREATED → RUNNING ⇄ PAUSED → STOPPED

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import random
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from config.settings import Settings, get_settings
from monitoring.models import Monitor
from monitoring.state_machine import Cadence
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Scheduler")


class TaskState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


# ============================================================================
# MONITOR TASK
# ============================================================================

class MonitorTask:
    """
    Scheduling record of one monitor.

    Holds the current monitor snapshot, the cadence directive returned by
    the last cycle and the lock that serializes cycles and pushes.
    """

    __slots__ = (
        "monitor", "state", "lock", "cadence", "generation",
        "next_fire", "next_delay", "last_start", "current", "busy",
        "active_since", "cycles", "errors",
    )

    def __init__(self, monitor: Monitor):
        self.monitor = monitor
        self.state = TaskState.CREATED
        self.lock = asyncio.Lock()
        self.cadence = Cadence.NORMAL
        self.generation = 0
        self.next_fire: Optional[float] = None
        self.next_delay: Optional[float] = None
        self.last_start: Optional[float] = None
        self.current: Optional[asyncio.Task] = None
        self.busy = False
        self.active_since: datetime = TimeHelper.utc_now()
        self.cycles = 0
        self.errors = 0

    @property
    def monitor_id(self) -> int:
        return self.monitor.id

    @property
    def in_flight(self) -> bool:
        return self.busy

    def cadence_seconds(self) -> float:
        return self.cadence.seconds(self.monitor)

    def defer(self, seconds: float) -> None:
        """Use ``seconds`` instead of the cadence for the next fire only."""
        self.next_delay = max(0.0, seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monitor_id": self.monitor.id,
            "state": self.state.value,
            "cadence": self.cadence.value,
            "in_flight": self.in_flight,
            "next_fire": self.next_fire,
            "cycles": self.cycles,
            "errors": self.errors,
        }

    def __repr__(self) -> str:
        return f"<MonitorTask monitor={self.monitor.id} state={self.state.value}>"


CycleCallback = Callable[[Monitor, MonitorTask], Awaitable[Cadence]]


# ============================================================================
# SCHEDULER
# ============================================================================

class MonitorScheduler:
    """
    Timer-heap scheduler with a bounded pool of concurrent cycles.

    Lifecycle
    ---------
    1.  ``await scheduler.start()``  — launches the timer loop
    2.  ``scheduler.add(monitor)``   — schedules the first cycle
    3.  ``await scheduler.stop()``   — cancels the loop and in-flight cycles

    None of ``add``/``update``/``pause``/``resume``/``remove``/``reschedule``
    block the caller.
    """

    def __init__(
        self,
        cycle: CycleCallback,
        settings: Optional[Settings] = None,
        max_concurrency: Optional[int] = None,
    ):
        """
        Parameters
        ----------
        cycle : CycleCallback
            Coroutine run once per cycle with the task's current snapshot;
            returns the cadence directive for the next cycle.
        settings : Settings | None
            Source of the concurrency bound and jitter.
        max_concurrency : int | None
            Overrides MONITOR_MAX_CONCURRENT_PROBES.
        """
        self.settings = settings or get_settings()
        self._cycle = cycle
        self._max_concurrency = max_concurrency or self.settings.monitoring.max_concurrent_probes
        self._semaphore = asyncio.Semaphore(self._max_concurrency)
        self._max_jitter = self.settings.monitoring.max_jitter_seconds

        self._tasks: Dict[int, MonitorTask] = {}
        self._heap: List[Tuple[float, int, int, int]] = []
        self._seq = itertools.count()
        self._wake = asyncio.Event()

        self._running = False
        self._timer_task: Optional[asyncio.Task] = None
        self._in_flight = 0
        self._cycles_completed = 0
        self._cycle_errors = 0

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the timer loop."""
        if self._running:
            logger.warning("MonitorScheduler is already running")
            return

        self._running = True
        self._timer_task = asyncio.create_task(self._timer_loop(), name="monitor-scheduler")
        logger.info(
            f"✓ MonitorScheduler started — max_concurrent={self._max_concurrency}, "
            f"max_jitter={self._max_jitter}s"
        )

    async def stop(self) -> None:
        """Stop the timer loop and cancel every in-flight cycle."""
        self._running = False

        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        in_flight = []
        for task in self._tasks.values():
            task.state = TaskState.STOPPED
            task.generation += 1
            if task.in_flight:
                task.current.cancel()
                in_flight.append(task.current)

        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

        self._tasks.clear()
        self._heap.clear()
        logger.info(f"✓ MonitorScheduler stopped ({len(in_flight)} cycles cancelled)")

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # TASK MANAGEMENT
    # ------------------------------------------------------------------

    def add(self, monitor: Monitor, delay: Optional[float] = None) -> MonitorTask:
        """
        Create and start a task for ``monitor``.

        Parameters
        ----------
        monitor : Monitor
            Snapshot to schedule.
        delay : float | None
            Seconds before the first cycle; a random jitter in
            ``[0, MONITOR_MAX_JITTER_SECONDS]`` when omitted.
        """
        existing = self._tasks.get(monitor.id)
        if existing is not None:
            logger.debug(f"[Scheduler] Monitor {monitor.id} already scheduled, updating")
            self.update(monitor)
            return existing

        task = MonitorTask(monitor)
        self._tasks[monitor.id] = task
        task.state = TaskState.RUNNING

        if delay is None:
            delay = random.uniform(0, self._max_jitter) if self._max_jitter > 0 else 0.0

        self._push(task, self._now() + delay)
        logger.debug(f"[Scheduler] Added monitor {monitor.id} ({monitor.type}), first fire in {delay:.1f}s")
        return task

    def update(self, monitor: Monitor) -> Optional[MonitorTask]:
        """
        Swap the snapshot of a scheduled monitor.

        A pending fire is re-keyed to ``last start + new cadence``; an
        in-flight cycle keeps the snapshot it started with.
        """
        task = self._tasks.get(monitor.id)
        if task is None:
            return None

        previous = task.monitor
        task.monitor = monitor

        if (
            task.state is TaskState.RUNNING
            and not task.in_flight
            and task.last_start is not None
            and task.cadence.seconds(previous) != task.cadence_seconds()
        ):
            self._push(task, max(task.last_start + task.cadence_seconds(), self._now()))

        logger.debug(f"[Scheduler] Updated monitor {monitor.id}")
        return task

    def pause(self, monitor_id: int) -> bool:
        """Stop scheduling new cycles; an in-flight cycle finishes normally."""
        task = self._tasks.get(monitor_id)
        if task is None or task.state is not TaskState.RUNNING:
            return False

        task.state = TaskState.PAUSED
        task.generation += 1
        task.next_fire = None
        logger.info(f"[Scheduler] ⏸ Paused monitor {monitor_id}")
        return True

    def resume(self, monitor: Monitor, delay: Optional[float] = None) -> MonitorTask:
        """Resume a paused task (or add one) with a fresh snapshot."""
        task = self._tasks.get(monitor.id)
        if task is None:
            return self.add(monitor, delay)

        task.monitor = monitor
        if task.state is TaskState.RUNNING:
            return task

        task.state = TaskState.RUNNING
        task.cadence = Cadence.NORMAL
        task.active_since = TimeHelper.utc_now()
        if delay is None:
            delay = random.uniform(0, self._max_jitter) if self._max_jitter > 0 else 0.0
        if not task.in_flight:
            self._push(task, self._now() + delay)
        logger.info(f"[Scheduler] ▶ Resumed monitor {monitor.id}")
        return task

    def remove(self, monitor_id: int) -> bool:
        """Cancel immediately, including an in-flight cycle, and release the task."""
        task = self._tasks.pop(monitor_id, None)
        if task is None:
            return False

        task.state = TaskState.STOPPED
        task.generation += 1
        task.next_fire = None
        if task.in_flight:
            task.current.cancel()

        logger.info(f"[Scheduler] ✕ Removed monitor {monitor_id}")
        return True

    def reschedule(self, monitor_id: int, delay: float) -> bool:
        """Move the next fire of a running task to ``now + delay``."""
        task = self._tasks.get(monitor_id)
        if task is None or task.state is not TaskState.RUNNING:
            return False

        self._push(task, self._now() + delay)
        return True

    def get(self, monitor_id: int) -> Optional[MonitorTask]:
        return self._tasks.get(monitor_id)

    def __contains__(self, monitor_id: int) -> bool:
        return monitor_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        states = [task.state for task in self._tasks.values()]
        return {
            "running_loop": self._running,
            "tasks": len(self._tasks),
            "running": states.count(TaskState.RUNNING),
            "paused": states.count(TaskState.PAUSED),
            "in_flight": self._in_flight,
            "heap_size": len(self._heap),
            "max_concurrency": self._max_concurrency,
            "cycles_completed": self._cycles_completed,
            "cycle_errors": self._cycle_errors,
        }

    # ------------------------------------------------------------------
    # TIMER LOOP
    # ------------------------------------------------------------------

    @staticmethod
    def _now() -> float:
        return asyncio.get_running_loop().time()

    def _push(self, task: MonitorTask, fire_at: float) -> None:
        task.generation += 1
        task.next_fire = fire_at
        heapq.heappush(self._heap, (fire_at, next(self._seq), task.monitor_id, task.generation))
        self._wake.set()

    async def _timer_loop(self) -> None:
        """Pop due entries, launch their cycles, sleep until the next one."""
        logger.info("[Scheduler] Timer loop started")
        while self._running:
            try:
                self._wake.clear()
                now = self._now()

                while self._heap and self._heap[0][0] <= now:
                    _, _, monitor_id, generation = heapq.heappop(self._heap)
                    task = self._tasks.get(monitor_id)
                    if (
                        task is None
                        or task.generation != generation
                        or task.state is not TaskState.RUNNING
                        or task.in_flight
                    ):
                        continue
                    self._launch(task)

                timeout = self._heap[0][0] - now if self._heap else None
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"[Scheduler] Unhandled error in timer loop: {e!r}")
                await asyncio.sleep(0.1)

        logger.info("[Scheduler] Timer loop exited")

    def _launch(self, task: MonitorTask) -> None:
        task.next_fire = None
        task.busy = True
        task.current = asyncio.create_task(
            self._run_cycle(task),
            name=f"monitor-cycle-{task.monitor_id}",
        )

    # ------------------------------------------------------------------
    # CYCLE
    # ------------------------------------------------------------------

    async def _run_cycle(self, task: MonitorTask) -> None:
        """
        Run one cycle of ``task`` inside the worker bound and its lock,
        then schedule the next one from the cycle's start time.
        """
        try:
            async with self._semaphore:
                async with task.lock:
                    await self._locked_cycle(task)
        finally:
            task.busy = False

    async def _locked_cycle(self, task: MonitorTask) -> None:
        if task.state is not TaskState.RUNNING:
            return

        started = self._now()
        task.last_start = started
        snapshot = task.monitor
        self._in_flight += 1

        try:
            task.cadence = await self._cycle(snapshot, task)
            task.cycles += 1
            self._cycles_completed += 1
        except asyncio.CancelledError:
            logger.debug(f"[Scheduler] Cycle of monitor {snapshot.id} cancelled")
            raise
        except Exception as e:
            task.errors += 1
            self._cycle_errors += 1
            logger.exception(
                f"[Scheduler] Cycle of monitor {snapshot.id} raised {e!r}; "
                f"rescheduling normally"
            )
        finally:
            self._in_flight -= 1

        task.busy = False
        delay = task.cadence_seconds() if task.next_delay is None else task.next_delay
        task.next_delay = None
        if task.state is TaskState.RUNNING and self._tasks.get(snapshot.id) is task:
            # Overrun cycles fire again immediately
            self._push(task, max(started + delay, self._now()))
