"""
Log provider: writes notifications to the application log.
"""

from __future__ import annotations

from config.constants import ChannelType
from monitoring.models import NotificationChannel
from notifications.base import BaseProvider
from utils.logger import get_logger


logger = get_logger("Alerts")


class LogProvider(BaseProvider):
    type = ChannelType.LOG.value

    async def send(self, channel: NotificationChannel, message: str) -> None:
        level = str((channel.config or {}).get("level", "WARNING")).upper()
        logger.log(level, f"[Alert → {channel.name}] {message}")
