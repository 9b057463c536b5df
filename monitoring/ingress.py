"""
============================================================================
PULSEWATCH - PUSH INGRESS
============================================================================
aiohttp server receiving pushes for push monitors.

    GET|POST /api/push/{token}?msg=&ping=   → 200 {"ok": true}
                                              404 unknown token
                                              400 inactive monitor / bad ping
                                              500 heartbeat not stored
    GET      /health                        → 200 JSON engine status

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import time
from typing import Optional

from aiohttp import web

from config.settings import Settings, get_settings
from exceptions import MonitorInactiveError, MonitorNotFoundError, StorageError
from monitoring.engine import MonitoringEngine
from utils.helpers import SystemHelper, TimeHelper
from utils.logger import get_logger


logger = get_logger("Ingress")


class IngressServer:
    """
    HTTP front door for push monitors, plus a health endpoint.

    Attributes
    ----------
    app : aiohttp.web.Application
    _runner : aiohttp.web.AppRunner
    _site : aiohttp.web.TCPSite
    _start_time : float          — epoch seconds when the server started
    _request_count : int         — total requests served
    """

    def __init__(self, engine: MonitoringEngine, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine = engine
        self._host = self.settings.ingress.host
        self._port = self.settings.ingress.port

        self.app = web.Application()
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: float = time.time()
        self._request_count: int = 0

        self.app.router.add_get("/api/push/{token}", self._handle_push)
        self.app.router.add_post("/api/push/{token}", self._handle_push)
        self.app.router.add_get("/health", self._handle_health)

    async def start(self) -> None:
        """Bind and start serving."""
        self._start_time = time.time()
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        logger.info(f"✓ IngressServer listening on {self._host}:{self._port}")

    async def stop(self) -> None:
        """Gracefully shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
        logger.info("✓ IngressServer stopped")

    # ------------------------------------------------------------------
    # ROUTE HANDLERS
    # ------------------------------------------------------------------

    async def _handle_push(self, request: web.Request) -> web.Response:
        """GET|POST /api/push/{token} — record a push."""
        self._request_count += 1
        token = request.match_info["token"]
        msg = request.query.get("msg") or None

        ping: Optional[float] = None
        raw_ping = request.query.get("ping")
        if raw_ping:
            try:
                ping = float(raw_ping)
            except ValueError:
                return _error(400, "ping must be a number")
            if ping < 0:
                return _error(400, "ping must not be negative")

        try:
            await self.engine.receive_push(token, msg=msg, ping=ping)
        except MonitorNotFoundError:
            return _error(404, "Monitor not found")
        except MonitorInactiveError:
            return _error(400, "Monitor is not active")
        except StorageError as e:
            logger.error(f"[Ingress] Push not stored: {e.log_format()}")
            return _error(500, "Heartbeat could not be stored")

        return web.json_response({"ok": True})

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health — engine status JSON."""
        self._request_count += 1
        uptime_seconds = time.time() - self._start_time
        scheduler = self.engine.scheduler.stats()

        health = {
            "status": "healthy" if self.engine.is_running else "stopped",
            "app": self.settings.app_name,
            "version": self.settings.app_version,
            "uptime_seconds": round(uptime_seconds, 1),
            "uptime_human": TimeHelper.seconds_to_human_readable(uptime_seconds),
            "requests_served": self._request_count,
            "monitors": scheduler["tasks"],
            "in_flight": scheduler["in_flight"],
            "memory_mb": SystemHelper.get_memory_usage(),
            "timestamp": TimeHelper.utc_now().isoformat(),
        }
        return web.json_response(health, status=200 if self.engine.is_running else 503)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"ok": False, "msg": message}, status=status)
