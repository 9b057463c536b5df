"""
============================================================================
PULSEWATCH - UPTIME AGGREGATOR
============================================================================
Read-side consumer of the heartbeat stream.

Coverage
--------
Each heartbeat covers ``[time, min(time + duration, next.time))`` clipped
to the requested window. Spans covered by nothing are gaps: unknown, and
excluded from both sides of the ratio just like Maintenance and Pending.

    uptime % = Up-covered / (Up-covered + Down-covered) * 100

Stat points
-----------
The window is split into buckets aligned to multiples of the width picked
by a replaceable bucket policy. Every bucket is emitted (zeros when
empty) with Up/Down counts and avg/min/max ping over its Up heartbeats.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from config.constants import BUCKET_LADDER
from config.settings import Settings, get_settings
from monitoring.interfaces import HeartbeatStore
from monitoring.models import Heartbeat, MonitorStatus, UptimeReport, UptimeStatPoint
from utils.helpers import TimeHelper
from utils.logger import get_logger, log_execution_time


logger = get_logger("Uptime")


BucketPolicy = Callable[[float, int], int]


def default_bucket_policy(range_seconds: float, max_points: int) -> int:
    """
    Smallest ladder width keeping the point count at or under ``max_points``.

    Ranges too long for the widest rung get a whole multiple of a day.
    """
    max_points = max(1, max_points)
    for width in BUCKET_LADDER:
        if math.ceil(range_seconds / width) <= max_points:
            return width

    widest = BUCKET_LADDER[-1]
    return widest * math.ceil(range_seconds / (widest * max_points))


class UptimeAggregator:
    """
    Computes uptime percentages and chart buckets from stored heartbeats.

    Parameters
    ----------
    store : HeartbeatStore
        Source of the heartbeat stream.
    settings : Settings, optional
        ``uptime_max_points`` and ``uptime_page_size``.
    bucket_policy : callable, optional
        ``(range_seconds, max_points) -> width_seconds``.
    """

    def __init__(
        self,
        store: HeartbeatStore,
        settings: Optional[Settings] = None,
        bucket_policy: BucketPolicy = default_bucket_policy,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.bucket_policy = bucket_policy

    @log_execution_time
    async def report(self, monitor_id: int, since: datetime, until: datetime) -> UptimeReport:
        """
        Uptime and stat points for ``monitor_id`` over ``[since, until)``.

        Raises
        ------
        ValueError
            When ``until`` is not after ``since``.
        StorageError
            Propagated from the store.
        """
        since = TimeHelper.ensure_utc(since)
        until = TimeHelper.ensure_utc(until)
        if until <= since:
            raise ValueError("'until' must be after 'since'")

        previous = await self.store.latest(monitor_id, before=since)
        in_window = await self._load(monitor_id, since, until)
        beats = ([previous] if previous is not None else []) + in_window

        start = TimeHelper.to_epoch(since)
        end = TimeHelper.to_epoch(until)
        uptime = self._uptime(beats, start, end)

        width = self.bucket_policy(end - start, self.settings.monitoring.uptime_max_points)
        points = self._buckets(in_window, start, end, width)

        pings = [hb.ping for hb in in_window if hb.status == MonitorStatus.UP and hb.ping is not None]
        avg_ping = round(sum(pings) / len(pings), 3) if pings else None

        logger.debug(
            f"[Uptime] Monitor {monitor_id}: {len(in_window)} heartbeats, "
            f"uptime={uptime}, {len(points)} points of {width}s"
        )
        return UptimeReport(
            monitor_id=monitor_id,
            since=since,
            until=until,
            uptime=uptime,
            avg_ping=avg_ping,
            bucket_seconds=width,
            points=points,
        )

    # ------------------------------------------------------------------ #
    # Internals                                                           #
    # ------------------------------------------------------------------ #

    async def _load(self, monitor_id: int, since: datetime, until: datetime) -> List[Heartbeat]:
        page_size = self.settings.monitoring.uptime_page_size
        beats: List[Heartbeat] = []
        offset = 0

        while True:
            page = await self.store.query(
                monitor_id, since=since, until=until, limit=page_size, offset=offset
            )
            beats.extend(page)
            if len(page) < page_size:
                return beats
            offset += page_size

    @staticmethod
    def _coverage(beats: List[Heartbeat], start: float, end: float) -> Dict[MonitorStatus, float]:
        covered: Dict[MonitorStatus, float] = {}

        for index, hb in enumerate(beats):
            begin = TimeHelper.to_epoch(hb.time)
            stop = begin + max(hb.duration, 0)
            if index + 1 < len(beats):
                stop = min(stop, TimeHelper.to_epoch(beats[index + 1].time))

            span = min(stop, end) - max(begin, start)
            if span > 0:
                status = MonitorStatus(hb.status)
                covered[status] = covered.get(status, 0.0) + span

        return covered

    def _uptime(self, beats: List[Heartbeat], start: float, end: float) -> Optional[float]:
        covered = self._coverage(beats, start, end)
        up = covered.get(MonitorStatus.UP, 0.0)
        down = covered.get(MonitorStatus.DOWN, 0.0)
        if up + down <= 0:
            return None
        return round(up / (up + down) * 100.0, 4)

    @staticmethod
    def _buckets(
        beats: List[Heartbeat],
        start: float,
        end: float,
        width: int,
    ) -> List[UptimeStatPoint]:
        first = TimeHelper.align_down(start, width)
        count = max(1, math.ceil((end - first) / width))
        points = [UptimeStatPoint(timestamp=first + i * width) for i in range(count)]
        pings: Dict[int, List[float]] = {}

        for hb in beats:
            index = int((TimeHelper.to_epoch(hb.time) - first) // width)
            if not 0 <= index < count:
                continue
            point = points[index]
            if hb.status == MonitorStatus.UP:
                point.up += 1
                if hb.ping is not None:
                    pings.setdefault(index, []).append(hb.ping)
            elif hb.status == MonitorStatus.DOWN:
                point.down += 1

        for index, values in pings.items():
            low, high, mean = _ping_stats(values)
            points[index].min_ping = low
            points[index].max_ping = high
            points[index].avg_ping = mean

        return points


def _ping_stats(values: List[float]) -> Tuple[float, float, float]:
    return min(values), max(values), round(sum(values) / len(values), 3)
