"""
Exceptions Package for PulseWatch

Provides a comprehensive exception hierarchy for error handling
throughout the application.
"""

from exceptions.base import (
    PulseWatchException,
    InitializationError,
)

from exceptions.database import (
    StorageError,
    StorageConnectionError,
)

from exceptions.validation import (
    ConfigError,
    UnknownMonitorTypeError,
)

from exceptions.monitoring import (
    MonitoringException,
    ProbeFailure,
    ExecutorFault,
    MonitorNotFoundError,
    MonitorInactiveError,
    NotificationDeliveryError,
)

__all__ = [
    # Base exceptions
    "PulseWatchException",
    "InitializationError",

    # Storage exceptions
    "StorageError",
    "StorageConnectionError",

    # Validation exceptions
    "ConfigError",
    "UnknownMonitorTypeError",

    # Monitoring exceptions
    "MonitoringException",
    "ProbeFailure",
    "ExecutorFault",
    "MonitorNotFoundError",
    "MonitorInactiveError",
    "NotificationDeliveryError",
]
