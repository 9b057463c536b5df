"""
Database Package for PulseWatch

Heartbeat store and monitor source adapters: SQLAlchemy (async, SQLite or
PostgreSQL) and in-process memory.
"""

from database.manager import DatabaseManager

from database.models import (
    Base,
    MonitorRow,
    HeartbeatRow,
    NotificationChannelRow,
    MonitorNotificationRow,
    MaintenanceWindowRow,
)

from database.repositories import (
    BaseRepository,
    SQLHeartbeatStore,
    SQLMonitorSource,
)

from database.memory import (
    InMemoryHeartbeatStore,
    InMemoryMonitorSource,
)

__all__ = [
    # Connection
    "DatabaseManager",

    # Models
    "Base",
    "MonitorRow",
    "HeartbeatRow",
    "NotificationChannelRow",
    "MonitorNotificationRow",
    "MaintenanceWindowRow",

    # Repositories
    "BaseRepository",
    "SQLHeartbeatStore",
    "SQLMonitorSource",

    # In-memory
    "InMemoryHeartbeatStore",
    "InMemoryMonitorSource",
]
