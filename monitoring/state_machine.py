"""
============================================================================
PULSEWATCH - HEARTBEAT STATE MACHINE
============================================================================
Pure decision logic turning one probe outcome plus the monitor's prior
state into heartbeat fields and a cadence directive for the scheduler.

States
------
PENDING      ← before the first confirmed outcome
UP
DOWN         ← confirmed; while retries <= max_retries a Down outcome is
               reported as DOWN but not confirmed (retrying sub-state)
MAINTENANCE  ← externally asserted override, never confirmed

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from monitoring.models import Heartbeat, Monitor, MonitorStatus, ProbeResult


class Cadence(str, Enum):
    """Which delay the scheduler should use before the next cycle."""

    NORMAL = "normal"
    RETRY = "retry"

    def seconds(self, monitor: Monitor) -> int:
        if self is Cadence.RETRY:
            return monitor.retry_interval
        return monitor.interval


@dataclass(frozen=True)
class MonitorState:
    """
    Per-monitor memory carried between cycles.

    Attributes
    ----------
    confirmed_status : MonitorStatus
        Last confirmed status (PENDING, UP or DOWN).
    retries : int
        Consecutive Down outcomes since the last Up / maintenance reset.
    down_count : int
        Confirmed Down heartbeats since the last transition into Up.
    has_history : bool
        Whether any heartbeat was produced yet.
    """

    confirmed_status: MonitorStatus = MonitorStatus.PENDING
    retries: int = 0
    down_count: int = 0
    has_history: bool = False

    @property
    def is_retrying(self) -> bool:
        return self.retries > 0 and self.confirmed_status != MonitorStatus.DOWN

    @classmethod
    def from_heartbeats(
        cls,
        latest: Optional[Heartbeat],
        latest_important: Optional[Heartbeat],
    ) -> "MonitorState":
        """
        Restore state after a restart.

        Parameters
        ----------
        latest : Heartbeat | None
            Most recent heartbeat of the monitor.
        latest_important : Heartbeat | None
            Most recent important heartbeat (a confirmed transition).
        """
        if latest is None:
            return cls()

        confirmed = MonitorStatus.PENDING
        if latest_important is not None and latest_important.status in (
            MonitorStatus.UP,
            MonitorStatus.DOWN,
        ):
            confirmed = MonitorStatus(latest_important.status)

        return cls(
            confirmed_status=confirmed,
            retries=latest.retries,
            down_count=latest.down_count,
            has_history=True,
        )


@dataclass(frozen=True)
class Decision:
    """Outcome of one evaluation."""

    state: MonitorState
    status: MonitorStatus
    important: bool
    resend: bool
    cadence: Cadence

    @property
    def retries(self) -> int:
        return self.state.retries

    @property
    def down_count(self) -> int:
        return self.state.down_count

    @property
    def should_notify(self) -> bool:
        return (self.important or self.resend) and self.status != MonitorStatus.MAINTENANCE


def evaluate(
    state: MonitorState,
    result: ProbeResult,
    max_retries: int,
    in_maintenance: bool = False,
    resend_interval: int = 0,
) -> Decision:
    """
    Decide heartbeat fields for one probe outcome.

    Parameters
    ----------
    state : MonitorState
        State before this outcome.
    result : ProbeResult
        Up or Down probe outcome (pushes arrive as Up).
    max_retries : int
        Down outcomes tolerated before confirming Down; 0 confirms at once.
    in_maintenance : bool
        Whether the monitor is inside a maintenance window now.
    resend_interval : int
        Re-notify every N-th consecutive confirmed Down after the first; 0
        disables resends.

    Returns
    -------
    Decision
    """
    # ---- MAINTENANCE ----
    if in_maintenance:
        return Decision(
            state=replace(state, retries=0, has_history=True),
            status=MonitorStatus.MAINTENANCE,
            important=False,
            resend=False,
            cadence=Cadence.NORMAL,
        )

    # ---- UP ----
    if result.status == MonitorStatus.UP:
        important = state.confirmed_status in (MonitorStatus.DOWN, MonitorStatus.PENDING)
        return Decision(
            state=MonitorState(
                confirmed_status=MonitorStatus.UP,
                retries=0,
                down_count=0,
                has_history=True,
            ),
            status=MonitorStatus.UP,
            important=important,
            resend=False,
            cadence=Cadence.NORMAL,
        )

    # ---- DOWN ----
    retries = state.retries + 1

    if retries <= max(max_retries, 0):
        return Decision(
            state=replace(state, retries=retries, has_history=True),
            status=MonitorStatus.DOWN,
            important=False,
            resend=False,
            cadence=Cadence.RETRY,
        )

    down_count = state.down_count + 1
    important = state.confirmed_status != MonitorStatus.DOWN

    resend = False
    subsequent = down_count - 1
    if not important and resend_interval > 0 and subsequent > 0:
        resend = subsequent % resend_interval == 0

    return Decision(
        state=MonitorState(
            confirmed_status=MonitorStatus.DOWN,
            retries=retries,
            down_count=down_count,
            has_history=True,
        ),
        status=MonitorStatus.DOWN,
        important=important,
        resend=resend,
        cadence=Cadence.NORMAL,
    )
