"""
Event bus fan-out and maintenance calendar.
"""

from datetime import timedelta

from monitoring.events import EventBus
from monitoring.maintenance import MaintenanceCalendar, MaintenanceWindow
from tests.conftest import T0


class TestEventBus:
    async def test_sync_and_async_handlers_receive_payload(self):
        bus = EventBus()
        received = []

        async def async_handler(payload):
            received.append(("async", payload))

        bus.subscribe("heartbeat", lambda payload: received.append(("sync", payload)))
        bus.subscribe("heartbeat", async_handler)
        bus.subscribe("other", lambda payload: received.append(("other", payload)))

        bus.publish("heartbeat", {"id": 1})
        await bus.drain()

        assert sorted(received) == [("async", {"id": 1}), ("sync", {"id": 1})]

    async def test_failing_handler_is_isolated(self):
        bus = EventBus()
        received = []

        def broken(payload):
            raise RuntimeError("subscriber bug")

        bus.subscribe("heartbeat", broken)
        bus.subscribe("heartbeat", received.append)

        bus.publish("heartbeat", 1)
        await bus.drain()

        assert received == [1]
        assert bus.handler_errors == 1

    async def test_unsubscribe(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe("heartbeat", received.append)

        unsubscribe()
        bus.publish("heartbeat", 1)
        await bus.drain()

        assert received == []
        assert bus.published == 1


class TestMaintenanceCalendar:
    async def test_window_is_half_open(self):
        calendar = MaintenanceCalendar()
        calendar.add_window(MaintenanceWindow(1, "upgrade", T0, T0 + timedelta(hours=1)))

        assert await calendar.is_under_maintenance(5, T0)
        assert await calendar.is_under_maintenance(5, T0 + timedelta(minutes=59))
        assert not await calendar.is_under_maintenance(5, T0 + timedelta(hours=1))
        assert not await calendar.is_under_maintenance(5, T0 - timedelta(seconds=1))

    async def test_window_scoped_to_monitors(self):
        calendar = MaintenanceCalendar()
        calendar.add_window(
            MaintenanceWindow(1, "db", T0, T0 + timedelta(hours=1), monitor_ids=frozenset({2}))
        )

        assert await calendar.is_under_maintenance(2, T0)
        assert not await calendar.is_under_maintenance(3, T0)

    async def test_inactive_window_is_ignored(self):
        calendar = MaintenanceCalendar()
        calendar.add_window(MaintenanceWindow(1, "off", T0, T0 + timedelta(hours=1), active=False))

        assert not await calendar.is_under_maintenance(1, T0)

    async def test_manual_override(self):
        calendar = MaintenanceCalendar()
        calendar.set_manual(4, True)
        assert await calendar.is_under_maintenance(4, T0)

        calendar.set_manual(4, False)
        assert not await calendar.is_under_maintenance(4, T0)

    async def test_refresh_reloads_and_prunes(self):
        windows = [
            MaintenanceWindow(1, "past", T0 - timedelta(hours=2), T0 - timedelta(hours=1)),
            MaintenanceWindow(2, "current", T0, T0 + timedelta(hours=1)),
        ]

        async def loader():
            return windows

        calendar = MaintenanceCalendar(loader=loader)

        assert await calendar.refresh(now=T0) == 1
        assert [w.title for w in calendar.windows] == ["current"]
