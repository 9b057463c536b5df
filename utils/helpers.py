"""
============================================================================
PULSEWATCH - HELPERS UTILITY
============================================================================
Collection of helper functions and utilities.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import math
import os
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

import psutil

from utils.logger import get_logger


logger = get_logger("Helpers")


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.

    All datetimes handled by the engine are timezone-aware UTC.
    """

    @staticmethod
    def utc_now() -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """Treat naive datetimes as UTC and convert aware ones to UTC."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_epoch(dt: datetime) -> float:
        """Seconds since the unix epoch."""
        return TimeHelper.ensure_utc(dt).timestamp()

    @staticmethod
    def align_down(seconds: float, width: int) -> int:
        """
        Align an epoch timestamp down to a multiple of ``width``.

        Args:
            seconds: Epoch seconds
            width: Bucket width in seconds

        Returns:
            Start of the bucket containing ``seconds``
        """
        return int(math.floor(seconds / width) * width)

    @staticmethod
    def format_datetime(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        """
        Format datetime to string.

        Args:
            dt: Datetime to format
            fmt: Format string

        Returns:
            Formatted string
        """
        return TimeHelper.ensure_utc(dt).strftime(fmt)

    @staticmethod
    def seconds_to_human_readable(seconds: float) -> str:
        """
        Convert seconds to human-readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human-readable string (e.g., "2h 30m 15s")
        """
        seconds = int(seconds)
        if seconds <= 0:
            return "0s"

        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)


# ============================================================================
# STRING UTILITIES
# ============================================================================

class StringHelper:
    """
    String manipulation utilities.
    """

    @staticmethod
    def truncate(text: str, max_length: int, suffix: str = "...") -> str:
        """
        Truncate text to maximum length.

        Args:
            text: Text to truncate
            max_length: Maximum length including suffix
            suffix: Suffix appended when truncated

        Returns:
            Truncated text
        """
        if len(text) <= max_length:
            return text
        return text[: max_length - len(suffix)] + suffix

    @staticmethod
    def escape_html(text: str) -> str:
        """Escape text for Telegram HTML parse mode."""
        return (
            text.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
        )


# ============================================================================
# SYSTEM UTILITIES
# ============================================================================

class SystemHelper:
    """
    Process resource figures reported by the health endpoint and job.
    """

    @staticmethod
    def get_memory_usage() -> float:
        """
        Get current memory usage in MB.

        Returns:
            Resident set size of this process in MB
        """
        process = psutil.Process(os.getpid())
        return round(process.memory_info().rss / 1024 / 1024, 1)


# ============================================================================
# RETRY
# ============================================================================

async def retry_call(
    func: Callable[[], Awaitable[Any]],
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    label: Optional[str] = None,
) -> Any:
    """
    Await ``func()`` with retries and exponential back-off.

    Args:
        func: Zero-argument coroutine factory
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries (seconds)
        backoff: Multiplier for delay after each retry
        exceptions: Tuple of exceptions that trigger a retry
        label: Name used in log lines

    Returns:
        Result of the first successful attempt

    Raises:
        The last exception when every attempt failed
    """
    label = label or getattr(func, "__name__", "call")
    current_delay = delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt >= max_attempts:
                logger.debug(f"All {max_attempts} attempts failed for {label}: {e!r}")
                raise
            logger.debug(
                f"Attempt {attempt}/{max_attempts} failed for {label}: {e!r}. "
                f"Retrying in {current_delay}s..."
            )
            await asyncio.sleep(current_delay)
            current_delay *= backoff
