"""
Telegram provider: sends notifications through the aiogram Bot API client.

Channel config
--------------
chat_id    : target chat (required)
bot_token  : bot token; NOTIFY_TELEGRAM_BOT_TOKEN when omitted
"""

from __future__ import annotations

from typing import Dict, Optional

from aiogram import Bot

from config.constants import ChannelType
from exceptions import NotificationDeliveryError
from monitoring.models import NotificationChannel
from notifications.base import BaseProvider
from utils.logger import get_logger


logger = get_logger("TelegramProvider")


class TelegramProvider(BaseProvider):
    """aiogram-backed Telegram delivery."""

    type = ChannelType.TELEGRAM.value

    def __init__(self, default_token: Optional[str] = None):
        self._default_token = default_token
        self._bots: Dict[str, Bot] = {}

    def _bot(self, token: str) -> Bot:
        bot = self._bots.get(token)
        if bot is None:
            bot = Bot(token=token)
            self._bots[token] = bot
        return bot

    async def send(self, channel: NotificationChannel, message: str) -> None:
        chat_id = self.require(channel, "chat_id")
        token = (channel.config or {}).get("bot_token") or self._default_token
        if not token:
            raise NotificationDeliveryError(
                f"Channel '{channel.name}' has no bot token",
                channel_id=channel.id,
                channel_type=channel.type,
            )

        await self._bot(token).send_message(
            chat_id=chat_id,
            text=message,
            parse_mode="HTML",
            disable_web_page_preview=True,
        )
        logger.debug(f"[Telegram] ✓ Sent to chat {chat_id} (channel {channel.id})")

    async def close(self) -> None:
        for bot in self._bots.values():
            await bot.session.close()
        self._bots.clear()
