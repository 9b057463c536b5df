"""
Maintenance windows.

``MaintenanceCalendar`` answers "is this monitor under maintenance at
this instant" from one-off windows and a manual override, optionally
reloading its windows from a persistent loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Set

from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Maintenance")


@dataclass(frozen=True)
class MaintenanceWindow:
    """
    A one-off maintenance period ``[start, end)``.

    An empty ``monitor_ids`` applies the window to every monitor.
    """

    id: int
    title: str
    start: datetime
    end: datetime
    monitor_ids: FrozenSet[int] = field(default_factory=frozenset)
    active: bool = True

    def covers(self, monitor_id: int, at: datetime) -> bool:
        if not self.active:
            return False
        if self.monitor_ids and monitor_id not in self.monitor_ids:
            return False
        at = TimeHelper.ensure_utc(at)
        return TimeHelper.ensure_utc(self.start) <= at < TimeHelper.ensure_utc(self.end)

    def ended_before(self, at: datetime) -> bool:
        return TimeHelper.ensure_utc(self.end) <= TimeHelper.ensure_utc(at)


WindowLoader = Callable[[], Awaitable[List[MaintenanceWindow]]]


class MaintenanceCalendar:
    """In-process maintenance oracle."""

    def __init__(self, loader: Optional[WindowLoader] = None):
        self._windows: Dict[int, MaintenanceWindow] = {}
        self._manual: Set[int] = set()
        self._loader = loader

    # ------------------------------------------------------------------
    # ORACLE
    # ------------------------------------------------------------------

    async def is_under_maintenance(self, monitor_id: int, at: datetime) -> bool:
        if monitor_id in self._manual:
            return True
        return any(window.covers(monitor_id, at) for window in self._windows.values())

    # ------------------------------------------------------------------
    # WINDOWS
    # ------------------------------------------------------------------

    def add_window(self, window: MaintenanceWindow) -> None:
        self._windows[window.id] = window
        logger.info(
            f"[Maintenance] Window {window.id} '{window.title}' "
            f"{window.start.isoformat()} → {window.end.isoformat()}"
        )

    def remove_window(self, window_id: int) -> bool:
        return self._windows.pop(window_id, None) is not None

    def replace_windows(self, windows: Iterable[MaintenanceWindow]) -> None:
        self._windows = {window.id: window for window in windows}

    @property
    def windows(self) -> List[MaintenanceWindow]:
        return sorted(self._windows.values(), key=lambda w: (w.start, w.id))

    def set_manual(self, monitor_id: int, enabled: bool) -> None:
        """Put a monitor under maintenance now, until switched off."""
        if enabled:
            self._manual.add(monitor_id)
            logger.info(f"[Maintenance] Monitor {monitor_id} manually under maintenance")
        else:
            self._manual.discard(monitor_id)
            logger.info(f"[Maintenance] Monitor {monitor_id} manual maintenance ended")

    def prune(self, now: datetime) -> int:
        """Drop windows that ended before ``now``. Returns how many were removed."""
        expired = [wid for wid, window in self._windows.items() if window.ended_before(now)]
        for wid in expired:
            del self._windows[wid]
        return len(expired)

    async def refresh(self, now: Optional[datetime] = None) -> int:
        """
        Reload windows from the loader (when configured) and prune expired
        ones. Returns the number of live windows.
        """
        if self._loader is not None:
            self.replace_windows(await self._loader())
        self.prune(now or TimeHelper.utc_now())
        return len(self._windows)
