"""
Shared fixtures: fast settings, in-memory stores and a monitor factory.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from config.settings import (
    Environment,
    LoggingSettings,
    MonitoringSettings,
    NotificationSettings,
    Settings,
)
from database.memory import InMemoryHeartbeatStore, InMemoryMonitorSource
from monitoring.models import Heartbeat, Monitor, MonitorStatus


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment=Environment.TESTING,
        monitoring=MonitoringSettings(
            max_jitter_seconds=0.0,
            push_grace_seconds=0.1,
            uptime_page_size=10,
            uptime_max_points=100,
        ),
        notifications=NotificationSettings(send_timeout=0.2, max_retries=1, retry_delay=0.0),
        logging=LoggingSettings(console_enabled=False, file_enabled=False, error_file_enabled=False),
    )


@pytest.fixture
def store() -> InMemoryHeartbeatStore:
    return InMemoryHeartbeatStore()


@pytest.fixture
def source() -> InMemoryMonitorSource:
    return InMemoryMonitorSource()


def make_monitor(monitor_id: int = 1, **overrides: Any) -> Monitor:
    values = dict(
        id=monitor_id,
        name=f"monitor-{monitor_id}",
        type="http",
        config={"url": "https://example.com"},
        interval=60,
        retry_interval=30,
        timeout=5.0,
        max_retries=0,
    )
    values.update(overrides)
    return Monitor(**values)


def make_heartbeat(
    monitor_id: int,
    status: MonitorStatus,
    offset: float,
    duration: float,
    ping: float = None,
    **overrides: Any,
) -> Heartbeat:
    """Heartbeat starting ``offset`` seconds after T0."""
    time = T0 + timedelta(seconds=offset)
    values = dict(
        monitor_id=monitor_id,
        status=status,
        msg=status.label,
        time=time,
        end_time=time,
        ping=ping,
        duration=duration,
    )
    values.update(overrides)
    return Heartbeat(**values)
