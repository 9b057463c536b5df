"""
Executor registry: maps a monitor's declared type to its executor.

Built once at startup and shared read-only by every monitor task.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from config.settings import Settings, get_settings
from exceptions import UnknownMonitorTypeError
from monitoring.executors.base import Executor, ExecutorConfig
from monitoring.executors.dns_record import DNSExecutor
from monitoring.executors.docker import DockerExecutor
from monitoring.executors.group import GroupExecutor
from monitoring.executors.http import HTTPExecutor
from monitoring.executors.push import PushExecutor
from monitoring.executors.rabbitmq import RabbitMQExecutor
from monitoring.executors.redis_ping import RedisExecutor
from monitoring.executors.tcp import TCPExecutor
from monitoring.executors.tls import TLSExecutor
from monitoring.interfaces import HeartbeatStore
from utils.logger import get_logger


logger = get_logger("ExecutorRegistry")


class ExecutorRegistry:
    """Type string → executor lookup."""

    def __init__(self) -> None:
        self._executors: Dict[str, Executor] = {}

    def register(self, monitor_type: str, executor: Executor) -> None:
        """
        Register ``executor`` for ``monitor_type``.

        Raises:
            ValueError: If the type is already registered
        """
        key = monitor_type.lower()
        if key in self._executors:
            raise ValueError(f"Executor for {monitor_type!r} already registered")
        self._executors[key] = executor
        logger.debug(f"[Registry] Registered {executor!r}")

    def get(self, monitor_type: str) -> Executor:
        """
        Look up the executor for ``monitor_type``.

        Raises:
            UnknownMonitorTypeError: If nothing is registered for the type
        """
        executor = self._executors.get(monitor_type.lower())
        if executor is None:
            raise UnknownMonitorTypeError(monitor_type)
        return executor

    def types(self) -> List[str]:
        return sorted(self._executors)

    def validate_config(self, monitor_type: str, config: Optional[dict]) -> ExecutorConfig:
        """
        Validate a monitor config for its type (create/update time).

        Raises:
            UnknownMonitorTypeError: Unknown type
            ConfigError: Config rejected, with field-level errors
        """
        return self.get(monitor_type).validate(config)

    def __contains__(self, monitor_type: str) -> bool:
        return monitor_type.lower() in self._executors

    def __len__(self) -> int:
        return len(self._executors)


def build_default_registry(
    store: HeartbeatStore,
    settings: Optional[Settings] = None,
) -> ExecutorRegistry:
    """
    Registry with every built-in executor.

    Args:
        store: Heartbeat store read by the group and push executors
        settings: Application settings (push grace period)

    Returns:
        Populated registry
    """
    settings = settings or get_settings()
    registry = ExecutorRegistry()

    for executor in (
        HTTPExecutor(),
        TCPExecutor(),
        DNSExecutor(),
        TLSExecutor(),
        DockerExecutor(),
        RedisExecutor(),
        RabbitMQExecutor(),
        GroupExecutor(store),
        PushExecutor(store, settings.monitoring.push_grace_seconds),
    ):
        registry.register(executor.type, executor)

    logger.info(f"[Registry] ✓ {len(registry)} executors registered: {', '.join(registry.types())}")
    return registry
