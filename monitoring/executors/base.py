"""
============================================================================
PULSEWATCH - PROBE EXECUTOR CONTRACT
============================================================================
Every monitor type is served by one Executor:

    validate(config)            ← run when a monitor is created/updated;
                                  raises ConfigError with field-level errors
    execute(monitor, context)   ← run by the engine once per probe cycle;
                                  returns a ProbeResult, or None when there
                                  is nothing to record this cycle

Executors hold no monitor-specific mutable state; one instance serves
every monitor of its type concurrently.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from exceptions import ConfigError
from monitoring.models import Monitor, ProbeResult
from utils.helpers import StringHelper, TimeHelper


class ExecutorConfig(BaseModel):
    """Base class of every executor config model."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ============================================================================
# PROBE CONTEXT
# ============================================================================

@dataclass(frozen=True)
class ProbeContext:
    """
    Per-cycle context handed to ``Executor.execute``.

    Attributes
    ----------
    deadline : float
        Event-loop time after which the engine cancels the probe.
    started_at : datetime
        Wall-clock start of the cycle (UTC).
    active_since : datetime
        When the monitor's task was (re)started; used by the push executor
        when no Up heartbeat exists yet.
    """

    deadline: float
    started_at: datetime
    active_since: datetime

    @classmethod
    def for_timeout(cls, timeout: float, active_since: datetime) -> "ProbeContext":
        loop = asyncio.get_running_loop()
        return cls(
            deadline=loop.time() + timeout,
            started_at=TimeHelper.utc_now(),
            active_since=active_since,
        )

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self.deadline - asyncio.get_running_loop().time())

    def up(self, message: str = "OK", ping: Optional[float] = None) -> ProbeResult:
        return ProbeResult.up(message, self.started_at, TimeHelper.utc_now(), ping)

    def down(self, message: str) -> ProbeResult:
        return ProbeResult.down(
            StringHelper.truncate(message, 500), self.started_at, TimeHelper.utc_now()
        )


# ============================================================================
# EXECUTOR BASE
# ============================================================================

class Executor(ABC):
    """Abstract probe executor."""

    type: ClassVar[str]
    config_model: ClassVar[Type[ExecutorConfig]]

    def validate(self, config: Optional[dict]) -> ExecutorConfig:
        """
        Parse ``config`` with the executor's model.

        Raises
        ------
        ConfigError
            With one ``{field, message}`` entry per failing field.
        """
        try:
            return self.config_model.model_validate(config or {})
        except ValidationError as e:
            raise ConfigError.from_pydantic(e, monitor_type=self.type) from e

    def parse(self, monitor: Monitor) -> ExecutorConfig:
        """Typed view of an already validated monitor config."""
        return self.config_model.model_validate(monitor.config or {})

    @abstractmethod
    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        """Probe once. Expected failures return a Down result."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} type={self.type!r}>"
