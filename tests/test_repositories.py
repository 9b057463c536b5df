"""
SQL repositories against an in-memory SQLite database, plus the
in-process store used elsewhere in the suite.
"""

from datetime import timedelta

import pytest

from config.settings import DatabaseSettings
from database.manager import DatabaseManager
from database.memory import InMemoryHeartbeatStore, InMemoryMonitorSource
from database.models import (
    MaintenanceWindowRow,
    MonitorNotificationRow,
    MonitorRow,
    NotificationChannelRow,
)
from database.repositories import SQLHeartbeatStore, SQLMonitorSource
from exceptions import StorageError
from monitoring.models import MonitorStatus, NotificationChannel
from tests.conftest import T0, make_heartbeat, make_monitor


@pytest.fixture
async def db():
    manager = DatabaseManager(DatabaseSettings(type="sqlite", sqlite_path=":memory:"))
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
async def seeded(db):
    async with db.session() as session:
        session.add_all([
            MonitorRow(id=1, name="api", type="http", config={"url": "https://example.com"}),
            MonitorRow(id=2, name="cron", type="push", push_token="s3cret", interval=300),
            MonitorRow(id=3, name="old", type="tcp", config={"host": "db", "port": 5432}, active=False),
            NotificationChannelRow(id=10, name="ops", type="telegram", config={"chat_id": "42"}),
            NotificationChannelRow(id=11, name="hook", type="webhook", config={"url": "https://hooks.example"}),
        ])
        await session.flush()
        session.add_all([
            MonitorNotificationRow(monitor_id=1, channel_id=10),
            MonitorNotificationRow(monitor_id=1, channel_id=11),
            MaintenanceWindowRow(
                id=1, title="upgrade", start=T0, end=T0 + timedelta(hours=1), monitor_ids=[1]
            ),
            MaintenanceWindowRow(
                id=2, title="cancelled", start=T0, end=T0 + timedelta(hours=1), active=False
            ),
        ])
    return db


class TestSQLHeartbeatStore:
    async def test_append_assigns_id_and_round_trips(self, seeded):
        store = SQLHeartbeatStore(seeded)
        heartbeat = make_heartbeat(1, MonitorStatus.UP, 0, 60, ping=12.5, important=True)

        stored = await store.append(heartbeat)

        assert stored.id is not None
        (loaded,) = await store.query(1)
        assert loaded.id == stored.id
        assert loaded.status == MonitorStatus.UP
        assert loaded.ping == 12.5
        assert loaded.important is True
        assert loaded.time == T0
        assert loaded.time.tzinfo is not None

    async def test_query_is_ascending_and_half_open(self, seeded):
        store = SQLHeartbeatStore(seeded)
        for offset in (120, 0, 60, 180):
            await store.append(make_heartbeat(1, MonitorStatus.UP, offset, 60))

        beats = await store.query(1, since=T0 + timedelta(seconds=60), until=T0 + timedelta(seconds=180))

        assert [hb.time for hb in beats] == [T0 + timedelta(seconds=60), T0 + timedelta(seconds=120)]

    async def test_query_pages(self, seeded):
        store = SQLHeartbeatStore(seeded)
        for offset in range(5):
            await store.append(make_heartbeat(1, MonitorStatus.UP, offset * 60, 60))

        page = await store.query(1, limit=2, offset=2)

        assert [hb.time for hb in page] == [T0 + timedelta(seconds=120), T0 + timedelta(seconds=180)]

    async def test_latest_filters(self, seeded):
        store = SQLHeartbeatStore(seeded)
        await store.append(make_heartbeat(1, MonitorStatus.UP, 0, 60, important=True))
        await store.append(make_heartbeat(1, MonitorStatus.DOWN, 60, 60, important=True))
        await store.append(make_heartbeat(1, MonitorStatus.DOWN, 120, 60))

        assert (await store.latest(1)).time == T0 + timedelta(seconds=120)
        assert (await store.latest(1, important_only=True)).time == T0 + timedelta(seconds=60)
        assert (await store.latest(1, status=MonitorStatus.UP)).time == T0
        assert (await store.latest(1, before=T0 + timedelta(seconds=60))).time == T0
        assert await store.latest(2) is None

    async def test_mark_notified_and_delete_before(self, seeded):
        store = SQLHeartbeatStore(seeded)
        first = await store.append(make_heartbeat(1, MonitorStatus.DOWN, 0, 60))
        await store.append(make_heartbeat(1, MonitorStatus.UP, 3600, 60))

        await store.mark_notified(first.id)
        assert (await store.query(1))[0].notified is True

        assert await store.delete_before(T0 + timedelta(minutes=30)) == 1
        assert len(await store.query(1)) == 1

    async def test_constraint_violation_is_storage_error(self, seeded):
        store = SQLHeartbeatStore(seeded)
        with pytest.raises(StorageError) as excinfo:
            await store.append(make_heartbeat(999, MonitorStatus.UP, 0, 60))
        assert excinfo.value.details["operation"] == "append"


class TestSQLMonitorSource:
    async def test_list_active(self, seeded):
        monitors = await SQLMonitorSource(seeded).list_active()

        assert [m.id for m in monitors] == [1, 2]
        assert monitors[0].config == {"url": "https://example.com"}
        assert monitors[0].notification_ids == frozenset({10, 11})

    async def test_get_and_push_token(self, seeded):
        source = SQLMonitorSource(seeded)

        assert (await source.get(3)).active is False
        assert await source.get(99) is None
        assert (await source.get_by_push_token("s3cret")).id == 2
        assert await source.get_by_push_token("guess") is None

    async def test_bound_channels(self, seeded):
        channels = await SQLMonitorSource(seeded).bound_channels(1)

        assert [c.id for c in channels] == [10, 11]
        assert channels[0].config == {"chat_id": "42"}
        assert await SQLMonitorSource(seeded).bound_channels(2) == []

    async def test_maintenance_windows(self, seeded):
        windows = await SQLMonitorSource(seeded).list_maintenance_windows()

        assert [w.title for w in windows] == ["upgrade"]
        assert windows[0].monitor_ids == frozenset({1})
        assert windows[0].covers(1, T0)


class TestDatabaseManager:
    async def test_database_info_counts_rows(self, seeded):
        info = await seeded.get_database_info()
        assert info["monitors"] == 3
        assert info["heartbeats"] == 0

    async def test_connection_check(self, db):
        assert await db.check_connection() is True

    def test_password_is_masked(self):
        masked = DatabaseManager._mask_password("postgresql+asyncpg://user:hunter2@db:5432/pw")
        assert masked == "postgresql+asyncpg://user:****@db:5432/pw"


class TestInMemory:
    async def test_store_keeps_time_order_and_copies(self):
        store = InMemoryHeartbeatStore()
        await store.append(make_heartbeat(1, MonitorStatus.UP, 60, 60))
        await store.append(make_heartbeat(1, MonitorStatus.DOWN, 0, 60))

        beats = await store.query(1)
        assert [hb.status for hb in beats] == [MonitorStatus.DOWN, MonitorStatus.UP]

        beats[0].msg = "mutated"
        assert (await store.query(1))[0].msg != "mutated"

    async def test_source_binds_known_channels_only(self):
        source = InMemoryMonitorSource(
            monitors=[make_monitor(1, notification_ids=frozenset({1, 2}))],
            channels=[NotificationChannel(id=1, name="ops", type="log")],
        )

        assert [c.id for c in await source.bound_channels(1)] == [1]
        assert await source.bound_channels(2) == []
