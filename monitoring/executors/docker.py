"""
Docker container executor.

Inspects a container through the Docker Engine HTTP API, reached either
over the daemon's unix socket or over TCP, using httpx.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import Field, model_validator

from config.constants import MonitorType
from monitoring.executors.base import Executor, ExecutorConfig, ProbeContext
from monitoring.models import Monitor, ProbeResult
from utils.logger import get_logger


logger = get_logger("DockerExecutor")


class DockerConnection(str, Enum):
    SOCKET = "socket"
    TCP = "tcp"


class DockerConfig(ExecutorConfig):
    container_id: str = Field(min_length=1, max_length=256)
    connection_type: DockerConnection = DockerConnection.SOCKET
    docker_daemon: str = Field(
        default="/var/run/docker.sock",
        description="Socket path for 'socket', base URL (http[s]://host:port) for 'tcp'",
    )
    tls_verify: bool = True

    @model_validator(mode="after")
    def validate_daemon(self) -> "DockerConfig":
        if self.connection_type == DockerConnection.SOCKET:
            if not self.docker_daemon.startswith("/"):
                raise ValueError("docker_daemon must be an absolute socket path")
        elif not self.docker_daemon.startswith(("http://", "https://", "tcp://")):
            raise ValueError("docker_daemon must be an http(s):// or tcp:// URL")
        return self


class DockerExecutor(Executor):
    """Container running/health check."""

    type = MonitorType.DOCKER.value
    config_model = DockerConfig

    @staticmethod
    def _client(config: DockerConfig, timeout: float) -> httpx.AsyncClient:
        if config.connection_type == DockerConnection.SOCKET:
            transport = httpx.AsyncHTTPTransport(uds=config.docker_daemon)
            return httpx.AsyncClient(
                transport=transport, base_url="http://docker", timeout=timeout
            )

        base_url = config.docker_daemon.replace("tcp://", "http://", 1)
        return httpx.AsyncClient(base_url=base_url, timeout=timeout, verify=config.tls_verify)

    async def execute(self, monitor: Monitor, context: ProbeContext) -> Optional[ProbeResult]:
        config: DockerConfig = self.parse(monitor)
        path = f"/containers/{quote(config.container_id, safe='')}/json"

        try:
            async with self._client(config, max(context.remaining(), 0.001)) as client:
                response = await client.get(path)
        except httpx.TimeoutException:
            return context.down("Docker daemon did not answer in time")
        except httpx.HTTPError as e:
            return context.down(f"Docker daemon unreachable: {str(e)[:200] or type(e).__name__}")

        if response.status_code == 404:
            return context.down(f"Container {config.container_id} not found")
        if response.status_code != 200:
            return context.down(f"Container inspect error: HTTP {response.status_code}")

        try:
            state = response.json().get("State") or {}
        except ValueError:
            return context.down("Docker daemon returned an invalid response")

        if not state.get("Running"):
            return context.down(f"Container is {state.get('Status') or 'not running'}")

        health = (state.get("Health") or {}).get("Status")
        if health == "unhealthy":
            return context.down("Container is unhealthy")
        if health == "starting":
            return context.up("Container is running (health check starting)")

        return context.up("Container is running")
