"""
============================================================================
PULSEWATCH - DATABASE MANAGER
============================================================================
Async engine, session factory and transactional session scope for the
SQL heartbeat store and monitor source.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from config.settings import DatabaseSettings, get_settings
from database.models import Base, HeartbeatRow, MonitorRow, NotificationChannelRow
from exceptions import StorageConnectionError
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Database")


# ============================================================================
# DATABASE MANAGER CLASS
# ============================================================================

class DatabaseManager:
    """
    Owns the SQLAlchemy async engine.

    Usage
    -----
        db = DatabaseManager()
        await db.initialize()
        async with db.session() as session:
            ...
        await db.close()
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        """
        Initialize database manager.

        Args:
            settings: Database settings (``get_settings().database`` when omitted)
        """
        self.settings = settings or get_settings().database
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._is_initialized = False
        self._lock = asyncio.Lock()

        self.database_url = self.settings.url
        logger.info(f"DatabaseManager created for {self._mask_password(self.database_url)}")

    @staticmethod
    def _mask_password(url: str) -> str:
        """
        Mask password in database URL for logging.

        Args:
            url: Database URL

        Returns:
            Masked URL
        """
        if "://" not in url:
            return url

        protocol, rest = url.split("://", 1)
        if "@" not in rest:
            return url

        credentials, host_part = rest.split("@", 1)
        if ":" in credentials:
            user, _ = credentials.split(":", 1)
            return f"{protocol}://{user}:****@{host_part}"

        return url

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.settings.echo}

        if self.settings.is_sqlite:
            if self.database_url.endswith(":memory:"):
                # In-memory databases live on a single shared connection
                options["poolclass"] = StaticPool
            return options

        options.update(
            pool_size=self.settings.pool_size,
            max_overflow=self.settings.max_overflow,
            pool_recycle=self.settings.pool_recycle,
            pool_pre_ping=True,
        )
        return options

    async def initialize(self) -> None:
        """
        Create the engine and session factory, then create missing tables.

        Raises:
            StorageConnectionError: If the database cannot be reached
        """
        async with self._lock:
            if self._is_initialized:
                logger.warning("Database already initialized")
                return

            try:
                self.engine = create_async_engine(self.database_url, **self._engine_options())
                self._register_event_listeners()

                self.session_factory = async_sessionmaker(
                    self.engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )

                await self.create_tables()
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"Failed to initialize database: {e!r}")
                raise StorageConnectionError(
                    f"Unable to connect to database: {e}",
                    url=self.database_url,
                    cause=e,
                ) from e

            self._is_initialized = True
            logger.info("✓ Database initialized successfully")

    def _register_event_listeners(self) -> None:
        """Register SQLAlchemy event listeners for connection management."""

        @event.listens_for(self.engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            logger.debug("New database connection established")
            if self.settings.is_sqlite:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    async def create_tables(self) -> None:
        """Create all database tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready")

    async def drop_tables(self) -> None:
        """
        Drop all database tables.
        WARNING: This will delete all data!
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("All database tables dropped")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional scope for database operations.

        Yields:
            AsyncSession instance

        Example:
            async with db_manager.session() as session:
                row = await session.get(MonitorRow, monitor_id)
        """
        if not self._is_initialized:
            await self.initialize()

        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.debug(f"Session rolled back: {e!r}")
            raise
        finally:
            await session.close()

    async def check_connection(self) -> bool:
        """
        Check if database connection is alive.

        Returns:
            True if connection is alive, False otherwise
        """
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e!r}")
            return False

    async def get_database_info(self) -> Dict[str, Any]:
        """
        Get database information and row counts.

        Returns:
            Dictionary with database info
        """
        try:
            async with self.session() as session:
                monitors = await session.scalar(select(func.count(MonitorRow.id)))
                heartbeats = await session.scalar(select(func.count(HeartbeatRow.id)))
                channels = await session.scalar(select(func.count(NotificationChannelRow.id)))
        except SQLAlchemyError as e:
            logger.error(f"Failed to get database info: {e!r}")
            return {
                "status": "error",
                "error": str(e),
                "checked_at": TimeHelper.utc_now().isoformat(),
            }

        return {
            "status": "connected",
            "database_url": self._mask_password(self.database_url),
            "monitors": monitors,
            "heartbeats": heartbeats,
            "channels": channels,
            "checked_at": TimeHelper.utc_now().isoformat(),
        }

    async def close(self) -> None:
        """Close database connections and cleanup resources."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._is_initialized = False
            logger.info("✓ Database connections closed")
