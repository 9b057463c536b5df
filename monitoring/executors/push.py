"""
Push executor: the dead-man's-switch side of push monitors.

Pushes themselves arrive through ``MonitoringEngine.receive_push``. On
each scheduled cycle this executor only checks whether the latest Up
heartbeat (or, before any push, the task start) is older than
``interval + grace``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from config.constants import Messages, MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.interfaces import HeartbeatStore
from monitoring.models import Monitor, MonitorStatus, ProbeResult
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("PushExecutor")


class PushConfig(ExecutorConfig):
    """Push monitors carry no probe settings; the token lives on the monitor."""


class PushExecutor(Executor):
    """Synthesizes Down when an expected push is missing."""

    type = MonitorType.PUSH.value
    config_model = PushConfig

    def __init__(self, store: HeartbeatStore, grace_seconds: float):
        self._store = store
        self.grace_seconds = grace_seconds

    def window(self, monitor: Monitor) -> float:
        """Seconds a push stays valid."""
        return monitor.interval + self.grace_seconds

    async def _reference(self, monitor: Monitor, context: ProbeContext) -> Tuple[datetime, bool]:
        """Time the window counts from, and whether a push was ever seen."""
        last_up = await self._store.latest(monitor.id, status=MonitorStatus.UP)
        if last_up is None:
            return context.active_since, False
        return TimeHelper.ensure_utc(last_up.time), True

    async def due_in(self, monitor: Monitor, context: ProbeContext) -> float:
        """Seconds until a missing push turns into a Down result (<= 0 when overdue)."""
        reference, _ = await self._reference(monitor, context)
        age = (context.started_at - reference).total_seconds()
        return self.window(monitor) - age

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        reference, pushed = await self._reference(monitor, context)
        age = (context.started_at - reference).total_seconds()
        if age < self.window(monitor):
            return None

        logger.debug(f"[Push] Monitor {monitor.id}: nothing received for {age:.1f}s")
        return context.down(Messages.PUSH_MISSING if pushed else Messages.PUSH_NEVER)
