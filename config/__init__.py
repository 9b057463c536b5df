"""
Configuration Package for PulseWatch

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants and enums used throughout the application
"""

from config.settings import (
    Settings,
    DatabaseSettings,
    MonitoringSettings,
    NotificationSettings,
    LoggingSettings,
    IngressSettings,
    get_settings,
)

from config.constants import (
    MonitorType,
    ChannelType,
    EventTopics,
    HTTPMethods,
    StatusCodes,
    Messages,
    MessageTemplates,
    Defaults,
    Limits,
    ErrorCodes,
    BUCKET_LADDER,
)

__all__ = [
    # Settings
    "Settings",
    "DatabaseSettings",
    "MonitoringSettings",
    "NotificationSettings",
    "LoggingSettings",
    "IngressSettings",
    "get_settings",

    # Constants
    "MonitorType",
    "ChannelType",
    "EventTopics",
    "HTTPMethods",
    "StatusCodes",
    "Messages",
    "MessageTemplates",
    "Defaults",
    "Limits",
    "ErrorCodes",
    "BUCKET_LADDER",
]
