"""
============================================================================
PULSEWATCH - LOGGING UTILITY
============================================================================
Logging setup on top of loguru: console sink, rotating file sink and a
separate errors-only file sink, driven by LoggingSettings.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import sys
import time
import asyncio
from functools import wraps
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[name]} | {name}:{function}:{line} - {message}"
)


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(config: Optional[LoggingSettings] = None) -> None:
    """
    Configure the loguru sinks.

    Must be called once by the application entry point; importing this
    module has no side effects.

    Args:
        config: Logging settings (defaults to environment-derived settings)
    """
    config = config or LoggingSettings()

    logger.remove()
    logger.configure(extra={"name": "pulsewatch"})

    log_level = config.level.value

    # Console Handler
    if config.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=config.console_colored,
            backtrace=True,
            diagnose=False,
        )

    # File Handler
    if config.file_enabled:
        config.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression="zip",
            serialize=config.serialize,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    # Error log file (separate file for errors)
    if config.error_file_enabled:
        config.error_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.error_file_path,
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

    logger.info("Logging system initialized")
    logger.info(f"Log level: {log_level}")
    logger.info(f"Console logging: {config.console_enabled}")
    logger.info(f"File logging: {config.file_enabled}")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Logger name (usually the component name)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger.bind(name="pulsewatch")


# ============================================================================
# LOG DECORATORS
# ============================================================================

def log_execution_time(func):
    """
    Decorator to log coroutine execution time at DEBUG level.

    Args:
        func: Coroutine function to decorate

    Returns:
        Decorated function
    """
    if not asyncio.iscoroutinefunction(func):
        raise TypeError(f"{func.__name__} must be a coroutine function")

    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
            execution_time = time.perf_counter() - start_time
            logger.debug(
                f"Function {func.__name__} executed in {execution_time:.4f} seconds"
            )
            return result
        except Exception as e:
            execution_time = time.perf_counter() - start_time
            logger.warning(
                f"Function {func.__name__} failed after {execution_time:.4f} seconds: {e!r}"
            )
            raise

    return async_wrapper
