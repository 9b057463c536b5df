"""
============================================================================
PULSEWATCH - MONITORING PACKAGE
============================================================================
Runtime monitoring infrastructure:
    • MonitorScheduler      — timer heap + bounded pool of probe cycles
    • evaluate / MonitorState — heartbeat state machine
    • EventBus              — live heartbeat fan-out
    • MaintenanceCalendar   — maintenance window oracle
    • UptimeAggregator      — uptime % and chart buckets
    • JobRunner             — periodic housekeeping jobs

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── models.py            ← Monitor, ProbeResult, Heartbeat, ...
├── interfaces.py        ← collaborator protocols + MonitorEvent
├── executors/           ← one probe executor per monitor type + registry
├── state_machine.py     ← hysteresis, retries, resend
├── scheduler.py         ← MonitorScheduler + MonitorTask
├── engine.py            ← MonitoringEngine (probe cycle, push, events)
├── notifier.py          ← NotificationDispatcher
├── uptime.py            ← UptimeAggregator
├── events.py            ← EventBus
├── maintenance.py       ← MaintenanceCalendar
├── ingress.py           ← aiohttp push / health server
└── jobs.py              ← JobRunner + HousekeepingJobs

engine, notifier and ingress depend on the ``notifications`` package and
are imported from their modules directly.

============================================================================
"""

from monitoring.models import (
    MonitorStatus,
    Monitor,
    ProbeResult,
    Heartbeat,
    NotificationChannel,
    UptimeStatPoint,
    UptimeReport,
)
from monitoring.interfaces import (
    MonitorSource,
    HeartbeatStore,
    ChannelProvider,
    EventPublisher,
    MaintenanceOracle,
    MonitorEvent,
    MonitorEventKind,
)
from monitoring.state_machine import Cadence, Decision, MonitorState, evaluate
from monitoring.scheduler import MonitorScheduler, MonitorTask, TaskState
from monitoring.events import EventBus
from monitoring.maintenance import MaintenanceCalendar, MaintenanceWindow
from monitoring.uptime import UptimeAggregator, default_bucket_policy
from monitoring.jobs import JobRunner, HousekeepingJobs

__all__ = [
    # Models
    "MonitorStatus",
    "Monitor",
    "ProbeResult",
    "Heartbeat",
    "NotificationChannel",
    "UptimeStatPoint",
    "UptimeReport",

    # Interfaces
    "MonitorSource",
    "HeartbeatStore",
    "ChannelProvider",
    "EventPublisher",
    "MaintenanceOracle",
    "MonitorEvent",
    "MonitorEventKind",

    # State machine
    "Cadence",
    "Decision",
    "MonitorState",
    "evaluate",

    # Scheduling
    "MonitorScheduler",
    "MonitorTask",
    "TaskState",

    # Read side & support
    "EventBus",
    "MaintenanceCalendar",
    "MaintenanceWindow",
    "UptimeAggregator",
    "default_bucket_policy",
    "JobRunner",
    "HousekeepingJobs",
]
