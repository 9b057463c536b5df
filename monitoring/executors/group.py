"""
Group executor: a composite monitor that is Down whenever one of its
children's latest heartbeat is Down.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator

from config.constants import Messages, MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.interfaces import HeartbeatStore
from monitoring.models import Monitor, MonitorStatus, ProbeResult


class GroupConfig(ExecutorConfig):
    children: List[int] = Field(default_factory=list)

    @field_validator("children")
    @classmethod
    def validate_children(cls, v: List[int]) -> List[int]:
        if len(set(v)) != len(v):
            raise ValueError("children must not repeat")
        return v


class GroupExecutor(Executor):
    """Composite status from the children's latest heartbeats."""

    type = MonitorType.GROUP.value
    config_model = GroupConfig

    def __init__(self, store: HeartbeatStore):
        self._store = store

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: GroupConfig = self.parse(monitor)
        if not config.children:
            return context.up(Messages.GROUP_EMPTY)

        down: List[int] = []
        for child_id in config.children:
            if child_id == monitor.id:
                continue
            latest = await self._store.latest(child_id)
            if latest is not None and latest.status == MonitorStatus.DOWN:
                down.append(child_id)

        if down:
            return context.down(
                f"{len(down)} of {len(config.children)} children down: "
                f"{', '.join(str(child) for child in down)}"
            )
        return context.up(Messages.GROUP_OK)
