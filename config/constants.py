"""
Constants Module for PulseWatch

Contains all constant values, enumerations, templates, and
static configuration used throughout the application.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Tuple


class MonitorType(str, Enum):
    """
    Monitor Type Enumeration

    Discriminant selecting the probe executor for a monitor.
    """

    HTTP = "http"
    TCP = "tcp"
    DNS = "dns"
    TLS = "tls"
    DOCKER = "docker"
    REDIS = "redis"
    RABBITMQ = "rabbitmq"
    GROUP = "group"
    PUSH = "push"

    @classmethod
    def is_passive(cls, value: str) -> bool:
        """Check if the type is driven by inbound pushes instead of outbound probes."""
        return value == cls.PUSH.value


class ChannelType(str, Enum):
    """Notification channel provider types."""

    TELEGRAM = "telegram"
    WEBHOOK = "webhook"
    LOG = "log"


class EventTopics:
    """Topics published on the event bus."""

    HEARTBEAT: Final[str] = "heartbeat"
    STATUS_CHANGED: Final[str] = "monitor.status_changed"


class HTTPMethods(str, Enum):
    """HTTP methods accepted by the http executor."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class StatusCodes:
    """
    HTTP Status Code Classes

    The http executor accepts either exact codes ("200"), ranges
    ("200-299") or whole classes ("2XX").
    """

    CLASSES: Final[Tuple[str, ...]] = ("1XX", "2XX", "3XX", "4XX", "5XX")
    DEFAULT_ACCEPTED: Final[Tuple[str, ...]] = ("2XX",)


class DNSRecordTypes(str, Enum):
    """Record types the dns executor may resolve."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    NS = "NS"
    TXT = "TXT"
    SOA = "SOA"
    SRV = "SRV"
    CAA = "CAA"


class Messages:
    """
    Heartbeat Messages

    Fixed heartbeat messages produced by the engine itself.
    """

    PUSH_DEFAULT: Final[str] = "OK"
    PUSH_MISSING: Final[str] = "No push received in time"
    PUSH_NEVER: Final[str] = "No push received yet"
    TIMEOUT: Final[str] = "Timeout after {seconds}s"
    INTERNAL_ERROR: Final[str] = "Internal probe error ({error_type})"
    MAINTENANCE: Final[str] = "Under maintenance"
    GROUP_EMPTY: Final[str] = "Group has no children"
    GROUP_OK: Final[str] = "All children up"


class MessageTemplates:
    """
    Notification Message Templates

    HTML templates used for channel notifications.
    """

    STATUS_EMOJI: Final[dict] = {
        0: "🔴",
        1: "🟢",
        2: "🟡",
        3: "🔧",
    }

    STATUS_CHANGE: Final[str] = """
{emoji} <b>{monitor_name}</b> is <b>{status}</b>

🔖 <b>Type:</b> {monitor_type}
💬 <b>Message:</b> {msg}
⏰ <b>Time:</b> {time}
"""

    RESEND: Final[str] = """
🔁 <b>{monitor_name}</b> is still <b>{status}</b> ({down_count} checks)

💬 <b>Message:</b> {msg}
⏰ <b>Time:</b> {time}
"""


class Defaults:
    """
    Default Values

    Values used when a monitor or channel omits an optional field.
    """

    # Monitor defaults
    INTERVAL: Final[int] = 60
    RETRY_INTERVAL: Final[int] = 60
    MAX_RETRIES: Final[int] = 0
    RESEND_INTERVAL: Final[int] = 0

    # HTTP defaults
    HTTP_METHOD: Final[HTTPMethods] = HTTPMethods.GET
    MAX_REDIRECTS: Final[int] = 10
    USER_AGENT: Final[str] = "PulseWatch/1.0 (Monitoring Service)"

    # TLS defaults
    TLS_EXPIRY_DAYS: Final[int] = 14

    # Display defaults
    DATETIME_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


class Limits:
    """
    Application Limits and Constraints
    """

    MIN_INTERVAL: Final[int] = 1
    MAX_INTERVAL: Final[int] = 86400 * 30
    MAX_URL_LENGTH: Final[int] = 2048
    MAX_MESSAGE_LENGTH: Final[int] = 4096
    MAX_HEARTBEAT_MSG: Final[int] = 2000


# Bucket widths (seconds) tried in order by the default uptime bucket policy
BUCKET_LADDER: Final[Tuple[int, ...]] = (
    60,         # 1 minute
    300,        # 5 minutes
    900,        # 15 minutes
    1800,       # 30 minutes
    3600,       # 1 hour
    10800,      # 3 hours
    21600,      # 6 hours
    43200,      # 12 hours
    86400,      # 1 day
)


class ErrorCodes:
    """Application error codes."""

    # General errors (1xxx)
    UNKNOWN_ERROR: Final[int] = 1000
    CONFIG_ERROR: Final[int] = 1001
    INITIALIZATION_ERROR: Final[int] = 1002

    # Storage errors (2xxx)
    STORAGE_ERROR: Final[int] = 2000
    DB_CONNECTION_ERROR: Final[int] = 2001

    # Monitor errors (4xxx)
    UNKNOWN_MONITOR_TYPE: Final[int] = 4000
    MONITOR_NOT_FOUND: Final[int] = 4001
    MONITOR_INACTIVE: Final[int] = 4002

    # Probe errors (5xxx)
    PROBE_FAILURE: Final[int] = 5000
    EXECUTOR_FAULT: Final[int] = 5001

    # Notification errors (6xxx)
    NOTIFICATION_FAILED: Final[int] = 6000
