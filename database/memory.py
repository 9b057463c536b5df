"""
In-process heartbeat store and monitor source.

Used by the test suite and for embedded runs without a database. Same
contracts as the SQL repositories: ``query`` is ascending by time and
``append`` assigns ids.
"""

from __future__ import annotations

import bisect
import itertools
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from monitoring.models import Heartbeat, Monitor, MonitorStatus, NotificationChannel
from utils.helpers import TimeHelper


class InMemoryHeartbeatStore:
    """Heartbeats kept per monitor, sorted by time."""

    def __init__(self) -> None:
        self._beats: Dict[int, List[Heartbeat]] = defaultdict(list)
        self._keys: Dict[int, List[tuple]] = defaultdict(list)
        self._by_id: Dict[int, Heartbeat] = {}
        self._ids = itertools.count(1)

    async def append(self, heartbeat: Heartbeat) -> Heartbeat:
        stored = replace(
            heartbeat,
            id=next(self._ids),
            time=TimeHelper.ensure_utc(heartbeat.time),
            end_time=TimeHelper.ensure_utc(heartbeat.end_time),
        )
        key = (stored.time, stored.id)
        index = bisect.bisect_right(self._keys[stored.monitor_id], key)
        self._keys[stored.monitor_id].insert(index, key)
        self._beats[stored.monitor_id].insert(index, stored)
        self._by_id[stored.id] = stored

        heartbeat.id = stored.id
        return heartbeat

    async def query(
        self,
        monitor_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Heartbeat]:
        beats = [
            hb for hb in self._beats.get(monitor_id, [])
            if (since is None or hb.time >= TimeHelper.ensure_utc(since))
            and (until is None or hb.time < TimeHelper.ensure_utc(until))
        ]
        beats = beats[offset:]
        if limit is not None:
            beats = beats[:limit]
        return [replace(hb) for hb in beats]

    async def latest(
        self,
        monitor_id: int,
        before: Optional[datetime] = None,
        important_only: bool = False,
        status: Optional[MonitorStatus] = None,
    ) -> Optional[Heartbeat]:
        for hb in reversed(self._beats.get(monitor_id, [])):
            if before is not None and hb.time >= TimeHelper.ensure_utc(before):
                continue
            if important_only and not hb.important:
                continue
            if status is not None and hb.status != status:
                continue
            return replace(hb)
        return None

    async def mark_notified(self, heartbeat_id: int) -> None:
        heartbeat = self._by_id.get(heartbeat_id)
        if heartbeat is not None:
            heartbeat.notified = True

    async def delete_before(self, cutoff: datetime) -> int:
        cutoff = TimeHelper.ensure_utc(cutoff)
        deleted = 0
        for monitor_id in list(self._beats):
            keep = [hb for hb in self._beats[monitor_id] if hb.time >= cutoff]
            deleted += len(self._beats[monitor_id]) - len(keep)
            for hb in self._beats[monitor_id]:
                if hb.time < cutoff:
                    self._by_id.pop(hb.id, None)
            self._beats[monitor_id] = keep
            self._keys[monitor_id] = [(hb.time, hb.id) for hb in keep]
        return deleted

    def all(self, monitor_id: int) -> List[Heartbeat]:
        """Every stored heartbeat of ``monitor_id`` (test helper)."""
        return list(self._beats.get(monitor_id, []))


class InMemoryMonitorSource:
    """Monitors and channels held in dictionaries."""

    def __init__(
        self,
        monitors: Iterable[Monitor] = (),
        channels: Iterable[NotificationChannel] = (),
    ) -> None:
        self._monitors: Dict[int, Monitor] = {m.id: m for m in monitors}
        self._channels: Dict[int, NotificationChannel] = {c.id: c for c in channels}

    def put(self, monitor: Monitor) -> None:
        self._monitors[monitor.id] = monitor

    def put_channel(self, channel: NotificationChannel) -> None:
        self._channels[channel.id] = channel

    def remove(self, monitor_id: int) -> None:
        self._monitors.pop(monitor_id, None)

    async def list_active(self) -> List[Monitor]:
        return [m for m in sorted(self._monitors.values(), key=lambda m: m.id) if m.active]

    async def get(self, monitor_id: int) -> Optional[Monitor]:
        return self._monitors.get(monitor_id)

    async def get_by_push_token(self, token: str) -> Optional[Monitor]:
        for monitor in self._monitors.values():
            if monitor.push_token and monitor.push_token == token:
                return monitor
        return None

    async def bound_channels(self, monitor_id: int) -> List[NotificationChannel]:
        monitor = self._monitors.get(monitor_id)
        if monitor is None:
            return []
        ids: Set[int] = set(monitor.notification_ids)
        return [self._channels[i] for i in sorted(ids) if i in self._channels]
