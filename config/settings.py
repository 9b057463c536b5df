"""
Settings Module for PulseWatch

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Includes validation, type checking, and sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

from pydantic import (
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class DatabaseSettings(BaseSettingsConfig):
    """
    Database Configuration Settings

    Backs the heartbeat store and the monitor source.
    Supports PostgreSQL (production) and SQLite (development).
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Database type: postgresql or sqlite"
    )

    # PostgreSQL settings
    host: str = Field(
        default="localhost",
        description="Database host address"
    )
    port: int = Field(
        default=5432,
        ge=1,
        le=65535,
        description="Database port number"
    )
    name: str = Field(
        default="pulsewatch",
        min_length=1,
        max_length=64,
        description="Database name"
    )
    user: str = Field(
        default="postgres",
        min_length=1,
        max_length=64,
        description="Database username"
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password"
    )

    # SQLite settings
    sqlite_path: Path = Field(
        default=Path("data/pulsewatch.db"),
        description="Path to SQLite database file"
    )

    # Connection pool settings
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Connection pool size"
    )
    max_overflow: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Maximum overflow connections"
    )
    pool_recycle: int = Field(
        default=1800,
        ge=60,
        le=7200,
        description="Connection recycle time in seconds"
    )

    echo: bool = Field(
        default=False,
        description="Echo SQL queries (debug mode)"
    )

    @property
    def url(self) -> str:
        """Generate database URL based on configuration."""
        if self.type == DatabaseType.SQLITE:
            if str(self.sqlite_path) == ":memory:":
                return "sqlite+aiosqlite:///:memory:"
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.sqlite_path}"

        password = self.password.get_secret_value()
        return (
            f"postgresql+asyncpg://{self.user}:{password}"
            f"@{self.host}:{self.port}/{self.name}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.type == DatabaseType.SQLITE


class MonitoringSettings(BaseSettingsConfig):
    """
    Monitoring Engine Configuration Settings

    Controls the probe worker pool, startup jitter, push grace period,
    heartbeat retention and uptime aggregation limits. Per-monitor
    interval/timeout/retry values live on the monitor itself.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    # Concurrency settings
    max_concurrent_probes: int = Field(
        default=200,
        ge=1,
        le=10000,
        description="Maximum probes executing at the same time"
    )
    max_jitter_seconds: float = Field(
        default=20.0,
        ge=0.0,
        le=600.0,
        description="Upper bound of the random delay before a monitor's first probe"
    )

    # Probe defaults
    default_timeout: float = Field(
        default=48.0,
        gt=0.0,
        le=600.0,
        description="Timeout used when a monitor does not declare one"
    )

    # Push monitors
    push_grace_seconds: float = Field(
        default=15.0,
        ge=0.0,
        le=3600.0,
        description="Extra time allowed after the interval before a missing push counts as Down"
    )

    # Housekeeping
    heartbeat_retention_days: int = Field(
        default=180,
        ge=1,
        le=3650,
        description="Days to keep heartbeats"
    )
    cleanup_interval: int = Field(
        default=86400,
        ge=60,
        le=604800,
        description="Seconds between heartbeat retention sweeps"
    )

    # Uptime aggregation
    uptime_max_points: int = Field(
        default=100,
        ge=1,
        le=5000,
        description="Upper bound on stat points returned for one range"
    )
    uptime_page_size: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Heartbeats fetched per store query while aggregating"
    )


class NotificationSettings(BaseSettingsConfig):
    """
    Notification Delivery Settings

    Applied per channel send by the notification dispatcher.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        extra="ignore"
    )

    send_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Seconds allowed for a single channel send"
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Extra attempts per channel after a failed send"
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Initial back-off between send attempts (doubles each retry)"
    )
    telegram_bot_token: Optional[SecretStr] = Field(
        default=None,
        description="Bot token used by channels that do not carry their own"
    )


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )

    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    console_colored: bool = Field(
        default=True,
        description="Enable colored console output"
    )

    file_enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/pulsewatch.log"),
        description="Log file path"
    )
    file_rotation: str = Field(
        default="10 MB",
        description="Log rotation size (e.g., '10 MB', '1 day')"
    )
    file_retention: str = Field(
        default="30 days",
        description="Log retention period"
    )
    error_file_enabled: bool = Field(
        default=False,
        description="Enable separate error log file"
    )
    error_file_path: Path = Field(
        default=Path("logs/errors.log"),
        description="Error log file path"
    )
    serialize: bool = Field(
        default=False,
        description="Write file logs as JSON records"
    )


class IngressSettings(BaseSettingsConfig):
    """
    Push / health HTTP endpoint settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="INGRESS_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Serve the push and health endpoints"
    )
    host: str = Field(
        default="0.0.0.0",
        description="Bind address"
    )
    port: int = Field(
        default=8034,
        ge=1,
        le=65535,
        description="Bind port"
    )


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )

    app_name: str = Field(
        default="PulseWatch",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Nested settings
    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings
    )
    monitoring: MonitoringSettings = Field(
        default_factory=MonitoringSettings
    )
    notifications: NotificationSettings = Field(
        default_factory=NotificationSettings
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings
    )
    ingress: IngressSettings = Field(
        default_factory=IngressSettings
    )

    @field_validator("app_version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Reject empty version strings."""
        if not v.strip():
            raise ValueError("app_version cannot be empty")
        return v.strip()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_production:
            self.database.echo = False

        elif self.is_testing:
            self.monitoring.max_jitter_seconds = 0.0
            self.logging.file_enabled = False
            self.logging.error_file_enabled = False

        return self

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump()

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "password" not in k.lower()
                        and "secret" not in k.lower()
                        and "token" not in k.lower()
                    }
                elif isinstance(obj, list):
                    return [remove_secrets(item) for item in obj]
                return obj

            data = remove_secrets(data)

        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure a single settings instance
    is used throughout the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
