"""
TCP port executor: open a connection to host:port, measure connect
latency, close.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from pydantic import Field, field_validator

from config.constants import MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("TCPExecutor")


class TCPConfig(ExecutorConfig):
    host: str
    port: int = Field(ge=1, le=65535)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if not URLValidator.is_valid_host(v):
            raise ValueError("must be a hostname or IP address")
        return v


class TCPExecutor(Executor):
    """Raw TCP connect check."""

    type = MonitorType.TCP.value
    config_model = TCPConfig

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: TCPConfig = self.parse(monitor)
        start_time = time.perf_counter()

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(config.host, config.port),
                timeout=max(context.remaining(), 0.001),
            )
        except asyncio.TimeoutError:
            return context.down(f"TCP connection to {config.host}:{config.port} timed out")
        except OSError as e:
            return context.down(
                f"TCP connection to {config.host}:{config.port} failed: {e.strerror or e}"
            )

        elapsed_ms = round((time.perf_counter() - start_time) * 1000.0, 3)

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass  # peer reset during close

        logger.debug(f"[TCP] {config.host}:{config.port} → connected in {elapsed_ms}ms")
        return context.up(f"Connected to {config.host}:{config.port}", ping=elapsed_ms)
