"""
============================================================================
PULSEWATCH - DATABASE MODELS
============================================================================
SQLAlchemy declarative models backing the SQL heartbeat store and
monitor source.

Tables
------
monitors                ← monitor records (edited by the owning system)
heartbeats              ← append-only cycle outcomes
notification_channels   ← delivery targets
monitor_notifications   ← monitor ↔ channel bindings
maintenance_windows     ← one-off maintenance periods

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from config.constants import Defaults
from utils.helpers import TimeHelper


class Base(DeclarativeBase):
    """Declarative base of every PulseWatch table."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=TimeHelper.utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=TimeHelper.utc_now,
        onupdate=TimeHelper.utc_now,
        nullable=False,
    )


# ============================================================================
# MONITORS
# ============================================================================

class MonitorRow(TimestampMixin, Base):
    __tablename__ = "monitors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    interval: Mapped[int] = mapped_column(Integer, default=Defaults.INTERVAL, nullable=False)
    timeout: Mapped[float] = mapped_column(Float, default=48.0, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=Defaults.MAX_RETRIES, nullable=False)
    retry_interval: Mapped[int] = mapped_column(
        Integer, default=Defaults.RETRY_INTERVAL, nullable=False
    )
    resend_interval: Mapped[int] = mapped_column(
        Integer, default=Defaults.RESEND_INTERVAL, nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    push_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    channels: Mapped[List["MonitorNotificationRow"]] = relationship(
        back_populates="monitor", cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<MonitorRow id={self.id} type={self.type} name={self.name!r}>"


# ============================================================================
# HEARTBEATS
# ============================================================================

class HeartbeatRow(Base):
    __tablename__ = "heartbeats"
    __table_args__ = (
        Index("ix_heartbeats_monitor_time", "monitor_id", "time"),
        Index("ix_heartbeats_monitor_important_time", "monitor_id", "important", "time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    monitor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[int] = mapped_column(Integer, nullable=False)
    msg: Mapped[str] = mapped_column(Text, default="", nullable=False)
    ping: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    down_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    retries: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    important: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<HeartbeatRow id={self.id} monitor={self.monitor_id} status={self.status}>"


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationChannelRow(TimestampMixin, Base):
    __tablename__ = "notification_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class MonitorNotificationRow(Base):
    __tablename__ = "monitor_notifications"
    __table_args__ = (
        UniqueConstraint("monitor_id", "channel_id", name="uq_monitor_channel"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    monitor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notification_channels.id", ondelete="CASCADE"), nullable=False
    )

    monitor: Mapped[MonitorRow] = relationship(back_populates="channels")
    channel: Mapped[NotificationChannelRow] = relationship(lazy="joined")


# ============================================================================
# MAINTENANCE
# ============================================================================

class MaintenanceWindowRow(TimestampMixin, Base):
    """An empty ``monitor_ids`` list applies the window to every monitor."""

    __tablename__ = "maintenance_windows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    monitor_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
