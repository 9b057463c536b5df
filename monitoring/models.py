"""
============================================================================
PULSEWATCH - MONITORING DATA MODEL
============================================================================
Value objects passed between the scheduler, executors, state machine,
notification dispatcher and uptime aggregator.

Monitor            ← point-in-time snapshot of an externally-owned monitor
ProbeResult        ← raw outcome of one executor run
Heartbeat          ← one recorded cycle outcome (append-only)
NotificationChannel← delivery target bound to monitors
UptimeStatPoint    ← one chart bucket
UptimeReport       ← uptime percentage + chart buckets for a window

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List, Optional

from config.constants import Defaults, MonitorType


class MonitorStatus(IntEnum):
    """Heartbeat status as exposed to consumers."""

    DOWN = 0
    UP = 1
    PENDING = 2
    MAINTENANCE = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


# ============================================================================
# MONITOR SNAPSHOT
# ============================================================================

@dataclass(frozen=True)
class Monitor:
    """
    Immutable snapshot of a monitor.

    The record itself is owned and edited elsewhere; every probe cycle
    works on the snapshot it started with.
    """

    id: int
    name: str
    type: str
    config: Dict[str, Any] = field(default_factory=dict)
    interval: int = Defaults.INTERVAL
    timeout: float = 48.0
    max_retries: int = Defaults.MAX_RETRIES
    retry_interval: int = Defaults.RETRY_INTERVAL
    resend_interval: int = Defaults.RESEND_INTERVAL
    active: bool = True
    notification_ids: FrozenSet[int] = frozenset()
    push_token: Optional[str] = None

    @property
    def is_push(self) -> bool:
        return MonitorType.is_passive(self.type)

    def with_changes(self, **changes: Any) -> "Monitor":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


# ============================================================================
# PROBE RESULT
# ============================================================================

@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single executor run (Up or Down only)."""

    status: MonitorStatus
    message: str
    started_at: datetime
    ended_at: datetime
    ping_override: Optional[float] = None

    @property
    def ping_ms(self) -> Optional[float]:
        """Round-trip latency in milliseconds (None for Down results)."""
        if self.ping_override is not None:
            return self.ping_override
        if self.status != MonitorStatus.UP:
            return None
        return round((self.ended_at - self.started_at).total_seconds() * 1000.0, 3)

    @classmethod
    def up(
        cls,
        message: str,
        started_at: datetime,
        ended_at: datetime,
        ping: Optional[float] = None,
    ) -> "ProbeResult":
        return cls(MonitorStatus.UP, message, started_at, ended_at, ping)

    @classmethod
    def down(cls, message: str, started_at: datetime, ended_at: datetime) -> "ProbeResult":
        return cls(MonitorStatus.DOWN, message, started_at, ended_at)


# ============================================================================
# HEARTBEAT
# ============================================================================

@dataclass
class Heartbeat:
    """
    One recorded cycle outcome.

    ``duration`` is the number of seconds this heartbeat covers: the
    cadence in effect when it was written.
    """

    monitor_id: int
    status: MonitorStatus
    msg: str
    time: datetime
    end_time: datetime
    ping: Optional[float] = None
    duration: int = 0
    down_count: int = 0
    retries: int = 0
    important: bool = False
    notified: bool = False
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Consumer shape: integer status, ISO-8601 times."""
        return {
            "id": self.id,
            "monitor_id": self.monitor_id,
            "status": int(self.status),
            "msg": self.msg,
            "ping": self.ping,
            "duration": self.duration,
            "down_count": self.down_count,
            "retries": self.retries,
            "important": self.important,
            "time": self.time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "notified": self.notified,
        }


# ============================================================================
# NOTIFICATION CHANNEL
# ============================================================================

@dataclass(frozen=True)
class NotificationChannel:
    """Delivery target. ``config`` is provider specific."""

    id: int
    name: str
    type: str
    config: Dict[str, Any] = field(default_factory=dict)
    active: bool = True


# ============================================================================
# UPTIME READ MODEL
# ============================================================================

@dataclass
class UptimeStatPoint:
    """One chart bucket. ``timestamp`` is the bucket start in epoch seconds."""

    timestamp: int
    up: int = 0
    down: int = 0
    avg_ping: float = 0.0
    min_ping: float = 0.0
    max_ping: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "up": self.up,
            "down": self.down,
            "avgPing": self.avg_ping,
            "minPing": self.min_ping,
            "maxPing": self.max_ping,
            "timestamp": self.timestamp,
        }


@dataclass
class UptimeReport:
    """Uptime percentage (None when nothing countable) plus chart buckets."""

    monitor_id: int
    since: datetime
    until: datetime
    uptime: Optional[float]
    avg_ping: Optional[float]
    bucket_seconds: int
    points: List[UptimeStatPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monitor_id": self.monitor_id,
            "since": self.since.isoformat(),
            "until": self.until.isoformat(),
            "uptime": self.uptime,
            "avgPing": self.avg_ping,
            "bucketSeconds": self.bucket_seconds,
            "points": [p.to_dict() for p in self.points],
        }
