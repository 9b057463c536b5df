"""
Push ingress HTTP endpoints.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from exceptions import MonitorInactiveError, MonitorNotFoundError, StorageError
from monitoring.ingress import IngressServer


@pytest.fixture
def engine():
    engine = MagicMock()
    engine.is_running = True
    engine.receive_push = AsyncMock()
    engine.scheduler.stats.return_value = {"tasks": 3, "in_flight": 1}
    return engine


@pytest.fixture
async def client(engine, settings):
    ingress = IngressServer(engine, settings)
    client = TestClient(TestServer(ingress.app))
    await client.start_server()
    yield client
    await client.close()


class TestPush:
    async def test_get_push_is_recorded(self, client, engine):
        response = await client.get("/api/push/abc123", params={"msg": "backup ok", "ping": "42.5"})

        assert response.status == 200
        assert await response.json() == {"ok": True}
        engine.receive_push.assert_awaited_once_with("abc123", msg="backup ok", ping=42.5)

    async def test_post_push_without_parameters(self, client, engine):
        response = await client.post("/api/push/abc123")

        assert response.status == 200
        engine.receive_push.assert_awaited_once_with("abc123", msg=None, ping=None)

    @pytest.mark.parametrize("ping", ["fast", "-1"])
    async def test_bad_ping_is_rejected(self, client, engine, ping):
        response = await client.get("/api/push/abc123", params={"ping": ping})

        assert response.status == 400
        assert (await response.json())["ok"] is False
        engine.receive_push.assert_not_awaited()

    @pytest.mark.parametrize(
        "error, status",
        [
            (MonitorNotFoundError("No push monitor for this token"), 404),
            (MonitorInactiveError("Monitor 1 is not active", monitor_id=1), 400),
            (StorageError("database is locked", operation="append"), 500),
        ],
    )
    async def test_engine_errors_map_to_status(self, client, engine, error, status):
        engine.receive_push.side_effect = error

        response = await client.get("/api/push/abc123")

        assert response.status == status
        body = await response.json()
        assert body["ok"] is False
        assert body["msg"]


class TestHealth:
    async def test_running_engine_is_healthy(self, client, settings):
        response = await client.get("/health")

        assert response.status == 200
        body = await response.json()
        assert body["status"] == "healthy"
        assert body["app"] == settings.app_name
        assert body["monitors"] == 3
        assert body["in_flight"] == 1
        assert body["requests_served"] == 1

    async def test_stopped_engine_is_unavailable(self, client, engine):
        engine.is_running = False

        response = await client.get("/health")

        assert response.status == 503
        assert (await response.json())["status"] == "stopped"
