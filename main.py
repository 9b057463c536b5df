"""
============================================================================
PULSEWATCH - MAIN APPLICATION
============================================================================
Wires every layer together and owns the startup / shutdown order.

Startup Order
-------------
1.  Load settings & configure logging
2.  Initialize DatabaseManager (create tables if needed)
3.  Build the executor registry and channel providers
4.  Wire up NotificationDispatcher, EventBus, MaintenanceCalendar
5.  Start MonitoringEngine (loads active monitors, starts the scheduler)
6.  Start IngressServer (aiohttp push / health endpoints)
7.  Start housekeeping JobRunner
8.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
-------------------------
    Stop jobs → stop ingress → stop engine → drain event handlers →
    close providers → close DB → exit

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
import signal
import sys
from typing import Optional

from config.settings import Settings, get_settings
from database.manager import DatabaseManager
from database.repositories import SQLHeartbeatStore, SQLMonitorSource
from exceptions import InitializationError, PulseWatchException
from monitoring.engine import MonitoringEngine
from monitoring.events import EventBus
from monitoring.executors.registry import build_default_registry
from monitoring.ingress import IngressServer
from monitoring.jobs import HousekeepingJobs, JobRunner
from monitoring.maintenance import MaintenanceCalendar
from monitoring.notifier import NotificationDispatcher
from notifications import ProviderRegistry, build_default_providers
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class PulseWatchApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order. Settings are the only shared singleton (cached via
    lru_cache).
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        # --- subsystems (populated during startup) ---
        self.db_manager: Optional[DatabaseManager] = None
        self.providers: Optional[ProviderRegistry] = None
        self.events: Optional[EventBus] = None
        self.engine: Optional[MonitoringEngine] = None
        self.ingress: Optional[IngressServer] = None
        self.jobs: Optional[JobRunner] = None

        self._is_running = False
        self._stop_event = asyncio.Event()

    def _print_banner(self) -> None:
        db = self.settings.database
        banner = f"""
╔══════════════════════════════════════════════════════════════════════════╗
║   📡  {self.settings.app_name} v{self.settings.app_version:<20}
║   Environment : {self.settings.environment.value:<12}  Database : {db.type.value:<10}
║   Ingress     : {'on :' + str(self.settings.ingress.port) if self.settings.ingress.enabled else 'off'}
╚══════════════════════════════════════════════════════════════════════════╝
"""
        logger.info(banner)

    # ==================================================================
    # PHASE 1: DATABASE
    # ==================================================================

    async def _init_database(self) -> None:
        logger.info("── Phase 1: Database ─────────────────────────────")
        self.db_manager = DatabaseManager(self.settings.database)
        await self.db_manager.initialize()

        if not await self.db_manager.check_connection():
            raise InitializationError("Database connection check failed", component="database")

        info = await self.db_manager.get_database_info()
        logger.info(
            f"  ✓ Connected to {self.settings.database.type.value} — "
            f"monitors={info.get('monitors', 0)}, heartbeats={info.get('heartbeats', 0)}"
        )

    # ==================================================================
    # PHASE 2: MONITORING
    # ==================================================================

    async def _init_monitoring(self) -> None:
        logger.info("── Phase 2: Monitoring ───────────────────────────")
        store = SQLHeartbeatStore(self.db_manager)
        source = SQLMonitorSource(self.db_manager)

        token = self.settings.notifications.telegram_bot_token
        self.providers = build_default_providers(token.get_secret_value() if token else None)
        self.events = EventBus()
        maintenance = MaintenanceCalendar(loader=source.list_maintenance_windows)
        await maintenance.refresh()

        self.engine = MonitoringEngine(
            source=source,
            store=store,
            registry=build_default_registry(store, self.settings),
            notifier=NotificationDispatcher(source, store, self.providers, self.settings),
            events=self.events,
            maintenance=maintenance,
            settings=self.settings,
        )
        await self.engine.start()

        self.jobs = JobRunner()
        HousekeepingJobs(store, self.engine.scheduler, maintenance, self.settings).register(self.jobs)
        logger.info("  ✓ Engine started, housekeeping jobs registered")

    # ==================================================================
    # PHASE 3: INGRESS
    # ==================================================================

    async def _init_ingress(self) -> None:
        logger.info("── Phase 3: Push Ingress ─────────────────────────")
        if not self.settings.ingress.enabled:
            logger.info("  Ingress disabled")
            return
        self.ingress = IngressServer(self.engine, self.settings)
        await self.ingress.start()

    # ==================================================================
    # FULL STARTUP SEQUENCE
    # ==================================================================

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if any phase fails.
        """
        setup_logging(self.settings.logging)
        self._print_banner()

        try:
            await self._init_database()
            await self._init_monitoring()
            await self._init_ingress()
            await self.jobs.start()
        except PulseWatchException as e:
            logger.error(f"  ✗ Startup failed: {e.log_format()}")
            return False
        except OSError as e:
            logger.error(f"  ✗ Startup failed: {e!r}")
            return False

        self._is_running = True
        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)
        return True

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        A failure in one subsystem doesn't prevent the others from cleaning up.
        """
        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)
        self._is_running = False

        steps = (
            ("JobRunner", self.jobs.stop if self.jobs else None),
            ("IngressServer", self.ingress.stop if self.ingress else None),
            ("MonitoringEngine", self.engine.stop if self.engine else None),
            ("EventBus", self.events.drain if self.events else None),
            ("Providers", self.providers.close if self.providers else None),
            ("Database", self.db_manager.close if self.db_manager else None),
        )
        for name, stop in steps:
            if stop is None:
                continue
            try:
                await stop()
                logger.info(f"  ✓ {name} stopped")
            except Exception as e:
                logger.error(f"  ✗ {name} stop error: {e!r}")

        logger.info("  ✓ SHUTDOWN COMPLETE")

    # ==================================================================
    # RUN
    # ==================================================================

    def request_stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Block until ``request_stop`` is called (signal handlers do that)."""
        await self._stop_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: PulseWatchApplication) -> None:
    """SIGTERM / SIGINT trigger a graceful shutdown."""
    loop = asyncio.get_running_loop()

    def _handle_signal(sig: signal.Signals) -> None:
        logger.info(f"  ⚡ {sig.name} received — initiating graceful shutdown…")
        app.request_stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still applies
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

async def main() -> int:
    app = PulseWatchApplication()
    _install_signal_handlers(app)

    if not await app.startup():
        await app.shutdown()
        return 1

    try:
        await app.run()
    finally:
        await app.shutdown()
    return 0


def cli() -> None:
    """Console-script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
