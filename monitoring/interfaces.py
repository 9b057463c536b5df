"""
Collaborator protocols consumed by the monitoring engine, plus the
monitor lifecycle event applied through ``MonitoringEngine.handle_event``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Protocol, runtime_checkable

from monitoring.models import Heartbeat, Monitor, MonitorStatus, NotificationChannel


@runtime_checkable
class MonitorSource(Protocol):
    """Read access to monitor snapshots."""

    async def list_active(self) -> List[Monitor]: ...

    async def get(self, monitor_id: int) -> Optional[Monitor]: ...

    async def get_by_push_token(self, token: str) -> Optional[Monitor]: ...

    async def bound_channels(self, monitor_id: int) -> List[NotificationChannel]: ...


@runtime_checkable
class HeartbeatStore(Protocol):
    """
    Append-only heartbeat persistence.

    ``query`` returns heartbeats in ascending time order. Implementations
    raise ``StorageError`` on failure.
    """

    async def append(self, heartbeat: Heartbeat) -> Heartbeat: ...

    async def query(
        self,
        monitor_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Heartbeat]: ...

    async def latest(
        self,
        monitor_id: int,
        before: Optional[datetime] = None,
        important_only: bool = False,
        status: Optional[MonitorStatus] = None,
    ) -> Optional[Heartbeat]: ...

    async def mark_notified(self, heartbeat_id: int) -> None: ...

    async def delete_before(self, cutoff: datetime) -> int: ...


@runtime_checkable
class ChannelProvider(Protocol):
    """Delivers one formatted message to one channel. Raises on failure."""

    async def send(self, channel: NotificationChannel, message: str) -> None: ...


@runtime_checkable
class EventPublisher(Protocol):
    """Fire-and-forget fan-out to live subscribers."""

    def publish(self, topic: str, payload: Any) -> None: ...


@runtime_checkable
class MaintenanceOracle(Protocol):
    """Answers whether a monitor is inside a maintenance window."""

    async def is_under_maintenance(self, monitor_id: int, at: datetime) -> bool: ...


# ============================================================================
# LIFECYCLE EVENTS
# ============================================================================

class MonitorEventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    PAUSED = "paused"
    RESUMED = "resumed"
    DELETED = "deleted"


@dataclass(frozen=True)
class MonitorEvent:
    """
    A change to a monitor made by the owning system.

    ``monitor`` carries the new snapshot for CREATED / UPDATED / RESUMED;
    PAUSED and DELETED only need ``monitor_id``.
    """

    kind: MonitorEventKind
    monitor_id: int
    monitor: Optional[Monitor] = None

    @classmethod
    def created(cls, monitor: Monitor) -> "MonitorEvent":
        return cls(MonitorEventKind.CREATED, monitor.id, monitor)

    @classmethod
    def updated(cls, monitor: Monitor) -> "MonitorEvent":
        return cls(MonitorEventKind.UPDATED, monitor.id, monitor)

    @classmethod
    def paused(cls, monitor_id: int) -> "MonitorEvent":
        return cls(MonitorEventKind.PAUSED, monitor_id)

    @classmethod
    def resumed(cls, monitor: Monitor) -> "MonitorEvent":
        return cls(MonitorEventKind.RESUMED, monitor.id, monitor)

    @classmethod
    def deleted(cls, monitor_id: int) -> "MonitorEvent":
        return cls(MonitorEventKind.DELETED, monitor_id)

