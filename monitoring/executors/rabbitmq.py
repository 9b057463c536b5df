"""
RabbitMQ broker executor.

Asks each configured node's management API whether the broker has any
active alarms (``GET /api/health/checks/alarms/``). The first node that
answers healthy makes the monitor Up; Down when every node fails.
"""

from __future__ import annotations

from typing import List, Optional

import httpx
from pydantic import Field, field_validator

from config.constants import MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger
from utils.validators import URLValidator


logger = get_logger("RabbitMQExecutor")

ALARMS_PATH = "api/health/checks/alarms/"


class RabbitMQConfig(ExecutorConfig):
    nodes: List[str] = Field(min_length=1, description="Management API base URLs, tried in order")
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("nodes")
    @classmethod
    def validate_nodes(cls, v: List[str]) -> List[str]:
        for node in v:
            if not URLValidator.is_valid_url(node):
                raise ValueError(f"invalid node URL {node!r}")
        return [node if node.endswith("/") else node + "/" for node in v]


class RabbitMQExecutor(Executor):
    """Broker alarm check over the management HTTP API."""

    type = MonitorType.RABBITMQ.value
    config_model = RabbitMQConfig

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: RabbitMQConfig = self.parse(monitor)
        last_error = "no node answered"

        async with httpx.AsyncClient(
            auth=(config.username, config.password),
            headers={"Accept": "application/json"},
            timeout=max(context.remaining(), 0.001),
        ) as client:
            for node in config.nodes:
                try:
                    response = await client.get(node + ALARMS_PATH)
                except httpx.TimeoutException:
                    last_error = f"{node} did not answer in time"
                    continue
                except httpx.HTTPError as e:
                    last_error = f"{node} unreachable: {str(e)[:200] or type(e).__name__}"
                    continue

                if response.status_code == 200:
                    return context.up("OK")

                last_error = self._describe_failure(response)
                logger.debug(f"[RabbitMQ] Monitor {monitor.id}: node {node} failed: {last_error}")

        return context.down(f"All RabbitMQ nodes failed: {last_error}")

    @staticmethod
    def _describe_failure(response: httpx.Response) -> str:
        if response.status_code == 503:
            try:
                reason = response.json().get("reason")
            except ValueError:
                reason = None
            return reason or "service unavailable"
        if response.status_code == 401:
            return "authentication rejected"
        return f"HTTP {response.status_code}"
