"""
Notification dispatcher and message formatting.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from exceptions import StorageError
from monitoring.models import MonitorStatus, NotificationChannel
from monitoring.notifier import NotificationDispatcher
from notifications.base import BaseProvider, ProviderRegistry
from notifications.formatter import MessageFormatter
from tests.conftest import make_heartbeat, make_monitor


class RecordingProvider(BaseProvider):
    """Fails for channels listed in ``failing`` and hangs for ``hanging``."""

    def __init__(self, channel_type="webhook", failing=(), hanging=()):
        self.type = channel_type
        self.failing = set(failing)
        self.hanging = set(hanging)
        self.attempts = {}
        self.delivered = []

    async def send(self, channel, message):
        self.attempts[channel.id] = self.attempts.get(channel.id, 0) + 1
        if channel.id in self.hanging:
            await asyncio.sleep(10)
        if channel.id in self.failing:
            raise ConnectionError("connection reset")
        self.delivered.append((channel.id, message))


def channel(channel_id, channel_type="webhook", **overrides):
    values = dict(id=channel_id, name=f"channel-{channel_id}", type=channel_type, config={})
    values.update(overrides)
    return NotificationChannel(**values)


@pytest.fixture
def monitor(source):
    monitor = make_monitor(1, name="api", notification_ids=frozenset({1, 2, 3}))
    source.put(monitor)
    return monitor


async def stored_down(store):
    return await store.append(make_heartbeat(1, MonitorStatus.DOWN, 0, 60, msg="refused", important=True))


class TestDispatch:
    async def test_failing_channel_does_not_affect_others(self, source, store, settings, monitor):
        for channel_id in (1, 2, 3):
            source.put_channel(channel(channel_id))
        provider = RecordingProvider(failing={2})
        dispatcher = NotificationDispatcher(source, store, ProviderRegistry([provider]), settings)

        outcome = await dispatcher.dispatch(monitor, await stored_down(store))

        assert outcome == {1: True, 2: False, 3: True}
        assert sorted(cid for cid, _ in provider.delivered) == [1, 3]
        assert dispatcher.get_stats()["failed"] == 1
        assert dispatcher.get_stats()["sent"] == 2

    async def test_failed_send_is_retried(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        provider = RecordingProvider(failing={1})
        dispatcher = NotificationDispatcher(source, store, ProviderRegistry([provider]), settings)

        await dispatcher.dispatch(monitor, await stored_down(store))

        assert provider.attempts[1] == settings.notifications.max_retries + 1

    async def test_hanging_send_times_out(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        source.put_channel(channel(2))
        provider = RecordingProvider(hanging={1})
        dispatcher = NotificationDispatcher(source, store, ProviderRegistry([provider]), settings)

        outcome = await asyncio.wait_for(
            dispatcher.dispatch(monitor, await stored_down(store)), timeout=2
        )

        assert outcome == {1: False, 2: True}

    async def test_inactive_channels_are_skipped(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        source.put_channel(channel(2, active=False))
        provider = RecordingProvider()
        dispatcher = NotificationDispatcher(source, store, ProviderRegistry([provider]), settings)

        outcome = await dispatcher.dispatch(monitor, await stored_down(store))

        assert outcome == {1: True}

    async def test_channel_without_provider_fails_alone(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        source.put_channel(channel(2, channel_type="carrier-pigeon"))
        dispatcher = NotificationDispatcher(
            source, store, ProviderRegistry([RecordingProvider()]), settings
        )

        outcome = await dispatcher.dispatch(monitor, await stored_down(store))

        assert outcome == {1: True, 2: False}

    async def test_heartbeat_marked_notified_once(self, source, settings, monitor):
        source.put_channel(channel(1))
        source.put_channel(channel(2))
        store = AsyncMock()
        dispatcher = NotificationDispatcher(
            source, store, ProviderRegistry([RecordingProvider(failing={2})]), settings
        )
        heartbeat = make_heartbeat(1, MonitorStatus.DOWN, 0, 60, id=42, important=True)

        await dispatcher.dispatch(monitor, heartbeat)

        store.mark_notified.assert_awaited_once_with(42)
        assert heartbeat.notified is True

    async def test_mark_notified_failure_is_logged_not_raised(self, source, settings, monitor):
        source.put_channel(channel(1))
        store = AsyncMock()
        store.mark_notified.side_effect = StorageError("locked", operation="mark_notified")
        dispatcher = NotificationDispatcher(
            source, store, ProviderRegistry([RecordingProvider()]), settings
        )
        heartbeat = make_heartbeat(1, MonitorStatus.DOWN, 0, 60, id=7)

        assert await dispatcher.dispatch(monitor, heartbeat) == {1: True}
        assert heartbeat.notified is False

    async def test_maintenance_is_never_dispatched(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        provider = RecordingProvider()
        dispatcher = NotificationDispatcher(source, store, ProviderRegistry([provider]), settings)

        heartbeat = make_heartbeat(1, MonitorStatus.MAINTENANCE, 0, 60)
        assert await dispatcher.dispatch(monitor, heartbeat) == {}
        assert provider.attempts == {}

    async def test_stored_heartbeat_is_marked_in_store(self, source, store, settings, monitor):
        source.put_channel(channel(1))
        dispatcher = NotificationDispatcher(
            source, store, ProviderRegistry([RecordingProvider()]), settings
        )
        heartbeat = await stored_down(store)

        await dispatcher.dispatch(monitor, heartbeat)

        assert store.all(1)[0].notified is True


class TestFormatter:
    def test_status_change_message(self):
        monitor = make_monitor(1, name="<api> & co")
        heartbeat = make_heartbeat(1, MonitorStatus.DOWN, 0, 60, msg="500 <Internal>")

        text = MessageFormatter().format(monitor, heartbeat)

        assert "&lt;api&gt; &amp; co" in text
        assert "<b>DOWN</b>" in text
        assert "500 &lt;Internal&gt;" in text
        assert "2024-01-01 00:00:00 UTC" in text

    def test_resend_message_mentions_down_count(self):
        heartbeat = make_heartbeat(1, MonitorStatus.DOWN, 0, 60, down_count=4)

        text = MessageFormatter().format(make_monitor(1), heartbeat, resend=True)

        assert "still <b>DOWN</b>" in text
        assert "(4 checks)" in text
