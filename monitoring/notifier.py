"""
============================================================================
PULSEWATCH - NOTIFICATION DISPATCHER
============================================================================
Delivers important (and resent) heartbeats to every active notification
channel bound to the monitor.

Delivery
--------
Channels are sent to concurrently. Each send is bounded by
NOTIFY_SEND_TIMEOUT and retried up to NOTIFY_MAX_RETRIES times with
exponential back-off. A channel that still fails is logged as a
NotificationDeliveryError; other channels are unaffected and nothing
propagates to the probe cycle.

Once every channel has finished (delivered or given up) the heartbeat is
marked as notified in the store, exactly once.

Author: Professional Development Team
Version: 1.0.0
License: MIT
============================================================================
"""

import asyncio
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings
from exceptions import NotificationDeliveryError, PulseWatchException
from monitoring.interfaces import HeartbeatStore, MonitorSource
from monitoring.models import Heartbeat, Monitor, MonitorStatus, NotificationChannel
from notifications.base import ProviderRegistry
from notifications.formatter import MessageFormatter
from utils.helpers import retry_call
from utils.logger import get_logger


logger = get_logger("Notifier")


class NotificationDispatcher:
    """
    Fans a heartbeat out to the monitor's bound channels.

    Parameters
    ----------
    source : MonitorSource
        Resolves the channels bound to a monitor.
    store : HeartbeatStore
        Receives the ``mark_notified`` call after delivery.
    providers : ProviderRegistry
        Channel type → provider.
    settings : Settings, optional
        Timeout and retry policy (``settings.notifications``).
    formatter : MessageFormatter, optional
        Message builder.
    """

    def __init__(
        self,
        source: MonitorSource,
        store: HeartbeatStore,
        providers: ProviderRegistry,
        settings: Optional[Settings] = None,
        formatter: Optional[MessageFormatter] = None,
    ):
        self.source = source
        self.store = store
        self.providers = providers
        self.settings = settings or get_settings()
        self.formatter = formatter or MessageFormatter()

        self._sent = 0
        self._failed = 0
        self._dispatched = 0

    # ------------------------------------------------------------------ #
    # Public API                                                          #
    # ------------------------------------------------------------------ #

    async def dispatch(
        self,
        monitor: Monitor,
        heartbeat: Heartbeat,
        resend: bool = False,
    ) -> Dict[int, bool]:
        """
        Deliver ``heartbeat`` to every active channel bound to ``monitor``.

        Parameters
        ----------
        monitor : Monitor
            Snapshot the heartbeat was produced from.
        heartbeat : Heartbeat
            Persisted heartbeat (must carry its store id to be marked).
        resend : bool
            Use the "still down" reminder template.

        Returns
        -------
        dict
            channel id → delivered.
        """
        if heartbeat.status == MonitorStatus.MAINTENANCE:
            return {}

        self._dispatched += 1
        channels = await self._channels(monitor)
        message = self.formatter.format(monitor, heartbeat, resend=resend)

        outcomes: List[bool] = []
        if channels:
            outcomes = list(
                await asyncio.gather(
                    *(self._deliver(monitor, channel, message) for channel in channels)
                )
            )
            delivered = sum(1 for ok in outcomes if ok)
            logger.info(
                f"[Notifier] Monitor {monitor.id} '{monitor.name}' "
                f"{MonitorStatus(heartbeat.status).label}{' (resend)' if resend else ''}: "
                f"{delivered}/{len(channels)} channel(s) delivered"
            )

        await self._mark_notified(heartbeat)
        return {channel.id: ok for channel, ok in zip(channels, outcomes)}

    def get_stats(self) -> Dict[str, Any]:
        return {
            "dispatched": self._dispatched,
            "sent": self._sent,
            "failed": self._failed,
            "providers": self.providers.types(),
        }

    # ------------------------------------------------------------------ #
    # Internals                                                           #
    # ------------------------------------------------------------------ #

    async def _channels(self, monitor: Monitor) -> List[NotificationChannel]:
        try:
            channels = await self.source.bound_channels(monitor.id)
        except Exception as e:
            logger.error(f"[Notifier] Could not load channels for monitor {monitor.id}: {e!r}")
            return []
        return [c for c in channels if c.active]

    async def _deliver(
        self,
        monitor: Monitor,
        channel: NotificationChannel,
        message: str,
    ) -> bool:
        cfg = self.settings.notifications
        provider = self.providers.get(channel.type)

        try:
            if provider is None:
                raise NotificationDeliveryError(
                    f"No provider for channel type '{channel.type}'",
                    channel_id=channel.id,
                    channel_type=channel.type,
                    monitor_id=monitor.id,
                )

            await retry_call(
                lambda: asyncio.wait_for(
                    provider.send(channel, message), timeout=cfg.send_timeout
                ),
                max_attempts=cfg.max_retries + 1,
                delay=cfg.retry_delay,
                label=f"channel {channel.id} ({channel.type})",
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failed += 1
            error = e if isinstance(e, NotificationDeliveryError) else NotificationDeliveryError(
                f"Delivery to '{channel.name}' failed: {e!r}",
                channel_id=channel.id,
                channel_type=channel.type,
                monitor_id=monitor.id,
                cause=e,
            )
            logger.warning(f"[Notifier] ✗ {error.log_format()}")
            return False

        self._sent += 1
        logger.debug(f"[Notifier] ✓ Channel {channel.id} '{channel.name}' ({channel.type})")
        return True

    async def _mark_notified(self, heartbeat: Heartbeat) -> None:
        if heartbeat.id is None:
            logger.warning(
                f"[Notifier] Heartbeat for monitor {heartbeat.monitor_id} has no id; "
                f"cannot mark as notified"
            )
            return

        try:
            await self.store.mark_notified(heartbeat.id)
        except PulseWatchException as e:
            logger.error(f"[Notifier] mark_notified({heartbeat.id}) failed: {e.log_format()}")
            return
        heartbeat.notified = True
