"""
Validation Exception Classes for PulseWatch

Raised when a monitor's configuration is rejected before it is
ever scheduled.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from config.constants import ErrorCodes
from exceptions.base import PulseWatchException


class ConfigError(PulseWatchException):
    """
    Monitor Configuration Error

    Carries field-level errors so callers can point at the
    offending inputs. Never reaches the scheduler.
    """

    default_error_code = ErrorCodes.CONFIG_ERROR
    default_recoverable = True

    def __init__(
        self,
        message: str = "Invalid monitor configuration",
        errors: Optional[List[Dict[str, str]]] = None,
        monitor_type: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize configuration error.

        Args:
            message: Error message
            errors: List of {"field": ..., "message": ...} entries
            monitor_type: The monitor type whose config was rejected
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        self.errors: List[Dict[str, str]] = list(errors or [])
        self.details["errors"] = self.errors

        if monitor_type:
            self.details["monitor_type"] = monitor_type

    @property
    def fields(self) -> List[str]:
        """Names of the fields that failed validation."""
        return [error["field"] for error in self.errors]

    @classmethod
    def from_pydantic(
        cls,
        exc: Any,
        monitor_type: Optional[str] = None
    ) -> "ConfigError":
        """
        Build from a pydantic ``ValidationError``.

        Args:
            exc: The validation error raised by the config model
            monitor_type: Monitor type being validated

        Returns:
            ConfigError with one entry per failing field
        """
        errors = []
        for item in exc.errors():
            location = ".".join(str(part) for part in item.get("loc", ())) or "config"
            errors.append({"field": location, "message": item.get("msg", "invalid value")})

        return cls(
            message=f"Invalid {monitor_type or 'monitor'} configuration",
            errors=errors,
            monitor_type=monitor_type,
            cause=exc,
        )

    def log_format(self) -> str:
        fields = ", ".join(f"{e['field']}: {e['message']}" for e in self.errors)
        return f"{super().log_format()} | Fields: {fields}"


class UnknownMonitorTypeError(PulseWatchException):
    """
    Unknown Monitor Type Error

    Raised when no executor is registered for a monitor's type.
    """

    default_error_code = ErrorCodes.UNKNOWN_MONITOR_TYPE
    default_recoverable = True

    def __init__(
        self,
        monitor_type: str,
        message: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message or f"Unknown monitor type: {monitor_type!r}", **kwargs)
        self.monitor_type = monitor_type
        self.details["monitor_type"] = monitor_type
