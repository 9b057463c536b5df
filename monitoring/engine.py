"""
============================================================================
PULSEWATCH - MONITORING ENGINE
============================================================================
Ties the scheduler, executors, state machine, heartbeat store, notifier
and event bus together.

Probe cycle (run by the scheduler under the monitor's task lock)
----------------------------------------------------------------
1.  Maintenance?  → Maintenance heartbeat, probe skipped
2.  executor.execute(snapshot) bounded by ``monitor.timeout``
        timeout          → Down "Timeout after Ns"
        ProbeFailure     → Down with its message
        anything else    → ExecutorFault, Down "Internal probe error (T)"
        None             → nothing recorded (push monitor on time)
3.  state machine → heartbeat fields + cadence
4.  store.append  (StorageError → nothing recorded, state kept)
5.  publish "heartbeat" (+ "monitor.status_changed" when important)
6.  await notifier.dispatch when important or a resend is due
7.  return the cadence; the scheduler fires again at start + cadence

Push monitors
-------------
``receive_push`` takes the same task lock, records an Up through the same
path and re-arms the dead-man's timer to ``interval + grace``.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from config.constants import EventTopics, Limits, Messages, MonitorType
from config.settings import Settings, get_settings
from exceptions import (
    ConfigError,
    ExecutorFault,
    MonitorInactiveError,
    MonitorNotFoundError,
    ProbeFailure,
    StorageError,
    UnknownMonitorTypeError,
)
from monitoring.executors.base import ExecutorConfig, ProbeContext
from monitoring.executors.push import PushExecutor
from monitoring.executors.registry import ExecutorRegistry
from monitoring.interfaces import (
    EventPublisher,
    HeartbeatStore,
    MaintenanceOracle,
    MonitorEvent,
    MonitorEventKind,
    MonitorSource,
)
from monitoring.models import Heartbeat, Monitor, MonitorStatus, ProbeResult
from monitoring.notifier import NotificationDispatcher
from monitoring.scheduler import MonitorScheduler, MonitorTask, TaskState
from monitoring.state_machine import Cadence, Decision, MonitorState, evaluate
from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger


logger = get_logger("Engine")


class MonitoringEngine:
    """
    Runs every active monitor on its own schedule.

    Lifecycle
    ---------
    1.  ``await engine.start()``           — loads active monitors, restores
                                             their state, starts the scheduler
    2.  ``await engine.handle_event(e)``   — applies create/update/pause/
                                             resume/delete
    3.  ``await engine.stop()``            — cancels in-flight cycles
    """

    def __init__(
        self,
        source: MonitorSource,
        store: HeartbeatStore,
        registry: ExecutorRegistry,
        notifier: Optional[NotificationDispatcher] = None,
        events: Optional[EventPublisher] = None,
        maintenance: Optional[MaintenanceOracle] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Parameters
        ----------
        source : MonitorSource
            Monitor snapshots and push-token lookup.
        store : HeartbeatStore
            Heartbeat persistence.
        registry : ExecutorRegistry
            Monitor type → executor.
        notifier : NotificationDispatcher | None
            Without one, important heartbeats are only logged.
        events : EventPublisher | None
            Live heartbeat fan-out.
        maintenance : MaintenanceOracle | None
            Without one, no monitor is ever under maintenance.
        settings : Settings | None
        """
        self.settings = settings or get_settings()
        self.source = source
        self.store = store
        self.registry = registry
        self.notifier = notifier
        self.events = events
        self.maintenance = maintenance

        self.scheduler = MonitorScheduler(self._cycle, self.settings)
        self._states: Dict[int, MonitorState] = {}
        self._pushes_accepted = 0
        self._storage_errors = 0

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the scheduler and schedule every active monitor."""
        await self.scheduler.start()

        monitors = await self.source.list_active()
        scheduled = 0
        for monitor in monitors:
            if await self._activate(monitor):
                scheduled += 1

        logger.info(f"✓ MonitoringEngine started — {scheduled}/{len(monitors)} monitors scheduled")

    async def stop(self) -> None:
        await self.scheduler.stop()
        self._states.clear()
        logger.info("✓ MonitoringEngine stopped")

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    # ------------------------------------------------------------------
    # MONITOR LIFECYCLE EVENTS
    # ------------------------------------------------------------------

    def validate_monitor(self, monitor: Monitor) -> ExecutorConfig:
        """
        Validate a monitor's config for its type.

        Raises
        ------
        UnknownMonitorTypeError, ConfigError
        """
        return self.registry.validate_config(monitor.type, monitor.config)

    async def handle_event(self, event: MonitorEvent) -> None:
        """
        Apply a change made by the owning system.

        CREATED / UPDATED / RESUMED validate the new snapshot first and
        raise ``ConfigError`` / ``UnknownMonitorTypeError`` when it is
        rejected; nothing is scheduled in that case.
        """
        kind = event.kind

        if kind is MonitorEventKind.PAUSED:
            self.scheduler.pause(event.monitor_id)
            return

        if kind is MonitorEventKind.DELETED:
            self.scheduler.remove(event.monitor_id)
            self._states.pop(event.monitor_id, None)
            return

        monitor = event.monitor
        if monitor is None:
            raise ValueError(f"{kind.value} event for monitor {event.monitor_id} carries no snapshot")
        self.validate_monitor(monitor)

        if not monitor.active:
            self.scheduler.pause(monitor.id)
            task = self.scheduler.get(monitor.id)
            if task is not None:
                task.monitor = monitor
            return

        task = self.scheduler.get(monitor.id)
        if task is None:
            await self._activate(monitor)
        elif task.state is TaskState.RUNNING:
            self.scheduler.update(monitor)
        else:
            self.scheduler.resume(monitor, self._first_delay(monitor))

    async def _activate(self, monitor: Monitor) -> bool:
        try:
            self.validate_monitor(monitor)
        except (UnknownMonitorTypeError, ConfigError) as e:
            logger.error(f"[Engine] Monitor {monitor.id} '{monitor.name}' not scheduled: {e.log_format()}")
            return False

        self._states[monitor.id] = await self._restore_state(monitor)
        self.scheduler.add(monitor, self._first_delay(monitor))
        return True

    def _first_delay(self, monitor: Monitor) -> Optional[float]:
        """Push monitors wait a full window before the first check; others get jitter."""
        if monitor.is_push:
            return self._push_executor().window(monitor)
        return None

    async def _restore_state(self, monitor: Monitor) -> MonitorState:
        try:
            latest = await self.store.latest(monitor.id)
            important = await self.store.latest(monitor.id, important_only=True)
        except StorageError as e:
            logger.warning(
                f"[Engine] Could not restore state of monitor {monitor.id}, starting fresh: "
                f"{e.log_format()}"
            )
            return MonitorState()
        return MonitorState.from_heartbeats(latest, important)

    def _push_executor(self) -> PushExecutor:
        return self.registry.get(MonitorType.PUSH.value)

    # ------------------------------------------------------------------
    # PUSH
    # ------------------------------------------------------------------

    async def receive_push(
        self,
        token: str,
        msg: Optional[str] = None,
        ping: Optional[float] = None,
    ) -> Heartbeat:
        """
        Record a push for the monitor owning ``token``.

        Raises
        ------
        MonitorNotFoundError
            Unknown token.
        MonitorInactiveError
            The monitor is paused or not scheduled.
        StorageError
            The heartbeat could not be stored.
        """
        monitor = await self.source.get_by_push_token(token)
        if monitor is None or not monitor.is_push:
            raise MonitorNotFoundError("No push monitor for this token")

        task = self.scheduler.get(monitor.id)
        if not monitor.active or task is None or task.state is not TaskState.RUNNING:
            raise MonitorInactiveError(f"Monitor {monitor.id} is not active", monitor_id=monitor.id)

        async with task.lock:
            snapshot = task.monitor
            now = TimeHelper.utc_now()
            result = ProbeResult.up(msg or Messages.PUSH_DEFAULT, now, now, ping)
            in_maintenance = await self._in_maintenance(snapshot.id, now)
            heartbeat, _ = await self._record(snapshot, result, in_maintenance, ping)
            self.scheduler.reschedule(snapshot.id, self._push_executor().window(snapshot))

        self._pushes_accepted += 1
        logger.debug(f"[Engine] Push accepted for monitor {snapshot.id}")
        return heartbeat

    # ------------------------------------------------------------------
    # PROBE CYCLE
    # ------------------------------------------------------------------

    async def _cycle(self, monitor: Monitor, task: MonitorTask) -> Cadence:
        context = ProbeContext.for_timeout(self._timeout(monitor), task.active_since)

        try:
            in_maintenance = await self._in_maintenance(monitor.id, context.started_at)
            if in_maintenance:
                result = context.up(Messages.MAINTENANCE)
            else:
                result = await self._probe(monitor, context)
                if result is None:
                    if monitor.is_push:
                        task.defer(await self._push_executor().due_in(monitor, context))
                    return task.cadence

            ping = result.ping_ms if result.status == MonitorStatus.UP else None
            _, decision = await self._record(monitor, result, in_maintenance, ping)
        except StorageError as e:
            self._storage_errors += 1
            logger.error(f"[Engine] Monitor {monitor.id}: heartbeat not recorded: {e.log_format()}")
            return task.cadence

        return decision.cadence

    async def _probe(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        """Run the executor; every outcome except a storage failure becomes a result."""
        try:
            executor = self.registry.get(monitor.type)
            return await asyncio.wait_for(
                executor.execute(monitor, context), timeout=self._timeout(monitor)
            )
        except asyncio.TimeoutError:
            return context.down(Messages.TIMEOUT.format(seconds=f"{self._timeout(monitor):g}"))
        except ProbeFailure as e:
            return context.down(e.message)
        except StorageError:
            raise
        except asyncio.CancelledError:
            raise
        except Exception as e:
            fault = ExecutorFault(
                f"Executor '{monitor.type}' raised {type(e).__name__}",
                monitor_id=monitor.id,
                cause=e,
            )
            logger.exception(f"[Engine] Monitor {monitor.id}: {fault.log_format()}")
            return context.down(fault.heartbeat_message)

    def _timeout(self, monitor: Monitor) -> float:
        if monitor.timeout and monitor.timeout > 0:
            return monitor.timeout
        return self.settings.monitoring.default_timeout

    async def _in_maintenance(self, monitor_id: int, at: datetime) -> bool:
        if self.maintenance is None:
            return False
        try:
            return await self.maintenance.is_under_maintenance(monitor_id, at)
        except Exception as e:
            logger.warning(f"[Engine] Maintenance lookup for monitor {monitor_id} failed: {e!r}")
            return False

    async def _record(
        self,
        monitor: Monitor,
        result: ProbeResult,
        in_maintenance: bool,
        ping: Optional[float],
    ) -> Tuple[Heartbeat, Decision]:
        """Evaluate, append, publish and notify. State advances only after a successful append."""
        state = self._states.get(monitor.id, MonitorState())
        decision = evaluate(
            state,
            result,
            monitor.max_retries,
            in_maintenance=in_maintenance,
            resend_interval=monitor.resend_interval,
        )

        message = Messages.MAINTENANCE if in_maintenance else result.message
        heartbeat = Heartbeat(
            monitor_id=monitor.id,
            status=decision.status,
            msg=StringHelper.truncate(message, Limits.MAX_HEARTBEAT_MSG),
            time=result.started_at,
            end_time=result.ended_at,
            ping=ping if decision.status == MonitorStatus.UP else None,
            duration=decision.cadence.seconds(monitor),
            down_count=decision.down_count,
            retries=decision.retries,
            important=decision.important,
        )
        heartbeat = await self.store.append(heartbeat)
        self._states[monitor.id] = decision.state

        if decision.important:
            logger.info(
                f"[Engine] Monitor {monitor.id} '{monitor.name}' is now "
                f"{decision.status.label}: {heartbeat.msg}"
            )

        self._publish(monitor, heartbeat)

        if decision.should_notify and monitor.active and self.notifier is not None:
            await self.notifier.dispatch(monitor, heartbeat, resend=not decision.important)

        return heartbeat, decision

    def _publish(self, monitor: Monitor, heartbeat: Heartbeat) -> None:
        if self.events is None:
            return

        try:
            payload = heartbeat.to_dict()
            self.events.publish(EventTopics.HEARTBEAT, payload)
            if heartbeat.important:
                self.events.publish(
                    EventTopics.STATUS_CHANGED,
                    {**payload, "monitor_name": monitor.name, "monitor_type": monitor.type},
                )
        except Exception:
            logger.exception(f"[Engine] Monitor {monitor.id}: publishing heartbeat {heartbeat.id} failed")

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def state_of(self, monitor_id: int) -> Optional[MonitorState]:
        return self._states.get(monitor_id)

    def stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "scheduler": self.scheduler.stats(),
            "monitors_tracked": len(self._states),
            "pushes_accepted": self._pushes_accepted,
            "storage_errors": self._storage_errors,
        }
        if self.notifier is not None:
            stats["notifications"] = self.notifier.get_stats()
        return stats
