"""
Monitoring Exception Classes for PulseWatch

Probe outcomes, executor faults, push ingress rejections and
notification delivery failures.
"""

from __future__ import annotations

from typing import Any, Optional

from config.constants import ErrorCodes, Messages
from exceptions.base import PulseWatchException


class MonitoringException(PulseWatchException):
    """
    Base Monitoring Exception

    Parent class for all exceptions raised along the probe cycle.
    """

    default_error_code = ErrorCodes.PROBE_FAILURE
    default_recoverable = True

    def __init__(
        self,
        message: str,
        monitor_id: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.monitor_id = monitor_id

        if monitor_id is not None:
            self.details["monitor_id"] = monitor_id


class ProbeFailure(MonitoringException):
    """
    Probe Failure

    An expected negative outcome (refused connection, auth failure,
    content mismatch). Executors may raise it internally; it is
    recorded as a Down heartbeat carrying the message.
    """

    default_error_code = ErrorCodes.PROBE_FAILURE


class ExecutorFault(MonitoringException):
    """
    Executor Fault

    Any unexpected exception escaping an executor. Logged with its
    traceback and recorded as a Down heartbeat with a generic message.
    """

    default_error_code = ErrorCodes.EXECUTOR_FAULT

    @property
    def heartbeat_message(self) -> str:
        """Diagnostic message shown on the Down heartbeat."""
        error_type = type(self.cause).__name__ if self.cause else "Unknown"
        return Messages.INTERNAL_ERROR.format(error_type=error_type)


class MonitorNotFoundError(MonitoringException):
    """Raised when a push token or monitor id matches no monitor."""

    default_error_code = ErrorCodes.MONITOR_NOT_FOUND


class MonitorInactiveError(MonitoringException):
    """Raised when a push arrives for a monitor that is not active."""

    default_error_code = ErrorCodes.MONITOR_INACTIVE


class NotificationDeliveryError(MonitoringException):
    """
    Notification Delivery Error

    One channel failed to deliver. Logged per channel, never escalated.
    """

    default_error_code = ErrorCodes.NOTIFICATION_FAILED

    def __init__(
        self,
        message: str,
        channel_id: Optional[int] = None,
        channel_type: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if channel_id is not None:
            self.details["channel_id"] = channel_id

        if channel_type:
            self.details["channel_type"] = channel_type
