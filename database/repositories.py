"""
============================================================================
PULSEWATCH - SQL REPOSITORIES
============================================================================
SQLAlchemy implementations of the heartbeat store and monitor source
protocols consumed by the monitoring engine.

Every SQLAlchemy error is wrapped in StorageError so the engine's
failure handling does not depend on the persistence technology.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.manager import DatabaseManager
from database.models import (
    HeartbeatRow,
    MaintenanceWindowRow,
    MonitorNotificationRow,
    MonitorRow,
    NotificationChannelRow,
)
from exceptions import StorageError
from monitoring.maintenance import MaintenanceWindow
from monitoring.models import Heartbeat, Monitor, MonitorStatus, NotificationChannel
from utils.helpers import TimeHelper
from utils.logger import get_logger


# ============================================================================
# ROW ↔ MODEL CONVERSION
# ============================================================================

def monitor_from_row(row: MonitorRow) -> Monitor:
    return Monitor(
        id=row.id,
        name=row.name,
        type=row.type,
        config=dict(row.config or {}),
        interval=row.interval,
        timeout=row.timeout,
        max_retries=row.max_retries,
        retry_interval=row.retry_interval,
        resend_interval=row.resend_interval,
        active=row.active,
        notification_ids=frozenset(link.channel_id for link in row.channels),
        push_token=row.push_token,
    )


def heartbeat_from_row(row: HeartbeatRow) -> Heartbeat:
    return Heartbeat(
        id=row.id,
        monitor_id=row.monitor_id,
        status=MonitorStatus(row.status),
        msg=row.msg,
        time=TimeHelper.ensure_utc(row.time),
        end_time=TimeHelper.ensure_utc(row.end_time),
        ping=row.ping,
        duration=row.duration,
        down_count=row.down_count,
        retries=row.retries,
        important=row.important,
        notified=row.notified,
    )


def channel_from_row(row: NotificationChannelRow) -> NotificationChannel:
    return NotificationChannel(
        id=row.id,
        name=row.name,
        type=row.type,
        config=dict(row.config or {}),
        active=row.active,
    )


# ============================================================================
# REPOSITORY BASE CLASS
# ============================================================================

class BaseRepository:
    """
    Base repository: session scope with SQLAlchemy errors mapped to StorageError.
    """

    def __init__(self, db_manager: DatabaseManager):
        """
        Initialize repository.

        Args:
            db_manager: DatabaseManager instance
        """
        self.db = db_manager
        self.logger = get_logger(self.__class__.__name__)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.db.session() as session:
                yield session
        except SQLAlchemyError as e:
            self.logger.error(f"[{self.__class__.__name__}] {operation} failed: {e!r}")
            raise StorageError(
                f"{operation} failed: {type(e).__name__}",
                operation=operation,
                cause=e,
            ) from e


# ============================================================================
# HEARTBEAT STORE
# ============================================================================

class SQLHeartbeatStore(BaseRepository):
    """Append-only heartbeat persistence."""

    async def append(self, heartbeat: Heartbeat) -> Heartbeat:
        async with self._session("append") as session:
            row = HeartbeatRow(
                monitor_id=heartbeat.monitor_id,
                status=int(heartbeat.status),
                msg=heartbeat.msg,
                ping=heartbeat.ping,
                duration=heartbeat.duration,
                down_count=heartbeat.down_count,
                retries=heartbeat.retries,
                important=heartbeat.important,
                notified=heartbeat.notified,
                time=heartbeat.time,
                end_time=heartbeat.end_time,
            )
            session.add(row)
            await session.flush()
            heartbeat.id = row.id
        return heartbeat

    async def query(
        self,
        monitor_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Heartbeat]:
        stmt = select(HeartbeatRow).where(HeartbeatRow.monitor_id == monitor_id)
        if since is not None:
            stmt = stmt.where(HeartbeatRow.time >= since)
        if until is not None:
            stmt = stmt.where(HeartbeatRow.time < until)
        stmt = stmt.order_by(HeartbeatRow.time.asc(), HeartbeatRow.id.asc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session("query") as session:
            rows = (await session.scalars(stmt)).all()
        return [heartbeat_from_row(row) for row in rows]

    async def latest(
        self,
        monitor_id: int,
        before: Optional[datetime] = None,
        important_only: bool = False,
        status: Optional[MonitorStatus] = None,
    ) -> Optional[Heartbeat]:
        stmt = select(HeartbeatRow).where(HeartbeatRow.monitor_id == monitor_id)
        if before is not None:
            stmt = stmt.where(HeartbeatRow.time < before)
        if important_only:
            stmt = stmt.where(HeartbeatRow.important.is_(True))
        if status is not None:
            stmt = stmt.where(HeartbeatRow.status == int(status))
        stmt = stmt.order_by(HeartbeatRow.time.desc(), HeartbeatRow.id.desc()).limit(1)

        async with self._session("latest") as session:
            row = await session.scalar(stmt)
        return heartbeat_from_row(row) if row is not None else None

    async def mark_notified(self, heartbeat_id: int) -> None:
        async with self._session("mark_notified") as session:
            await session.execute(
                update(HeartbeatRow)
                .where(HeartbeatRow.id == heartbeat_id)
                .values(notified=True)
            )

    async def delete_before(self, cutoff: datetime) -> int:
        async with self._session("delete_before") as session:
            result = await session.execute(delete(HeartbeatRow).where(HeartbeatRow.time < cutoff))
        return result.rowcount or 0


# ============================================================================
# MONITOR SOURCE
# ============================================================================

class SQLMonitorSource(BaseRepository):
    """Read access to monitor records, their channels and maintenance windows."""

    async def list_active(self) -> List[Monitor]:
        stmt = select(MonitorRow).where(MonitorRow.active.is_(True)).order_by(MonitorRow.id)
        async with self._session("list_active") as session:
            rows = (await session.scalars(stmt)).all()
            return [monitor_from_row(row) for row in rows]

    async def get(self, monitor_id: int) -> Optional[Monitor]:
        async with self._session("get") as session:
            row = await session.get(MonitorRow, monitor_id)
            return monitor_from_row(row) if row is not None else None

    async def get_by_push_token(self, token: str) -> Optional[Monitor]:
        stmt = select(MonitorRow).where(MonitorRow.push_token == token)
        async with self._session("get_by_push_token") as session:
            row = await session.scalar(stmt)
            return monitor_from_row(row) if row is not None else None

    async def bound_channels(self, monitor_id: int) -> List[NotificationChannel]:
        stmt = (
            select(NotificationChannelRow)
            .join(
                MonitorNotificationRow,
                MonitorNotificationRow.channel_id == NotificationChannelRow.id,
            )
            .where(MonitorNotificationRow.monitor_id == monitor_id)
            .order_by(NotificationChannelRow.id)
        )
        async with self._session("bound_channels") as session:
            rows = (await session.scalars(stmt)).all()
        return [channel_from_row(row) for row in rows]

    async def list_maintenance_windows(self) -> List[MaintenanceWindow]:
        """Active maintenance windows; the MaintenanceCalendar loader."""
        stmt = select(MaintenanceWindowRow).where(MaintenanceWindowRow.active.is_(True))
        async with self._session("list_maintenance_windows") as session:
            rows = (await session.scalars(stmt)).all()
        return [
            MaintenanceWindow(
                id=row.id,
                title=row.title,
                start=TimeHelper.ensure_utc(row.start),
                end=TimeHelper.ensure_utc(row.end),
                monitor_ids=frozenset(row.monitor_ids or ()),
                active=row.active,
            )
            for row in rows
        ]
