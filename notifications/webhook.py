"""
Webhook provider: POSTs a JSON document to the channel's URL with httpx.

Channel config
--------------
url      : target URL (required)
headers  : extra request headers (optional)
"""

from __future__ import annotations

from typing import Optional

import httpx

from config.constants import ChannelType
from monitoring.models import NotificationChannel
from notifications.base import BaseProvider
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("WebhookProvider")


class WebhookProvider(BaseProvider):
    """HTTP JSON delivery."""

    type = ChannelType.WEBHOOK.value

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        return self._client

    async def send(self, channel: NotificationChannel, message: str) -> None:
        url = self.require(channel, "url")
        headers = dict((channel.config or {}).get("headers") or {})

        response = await self._get_client().post(
            url,
            json={
                "channel": channel.name,
                "message": message,
                "sent_at": TimeHelper.utc_now().isoformat(),
            },
            headers=headers,
        )
        response.raise_for_status()
        logger.debug(f"[Webhook] ✓ {url} → {response.status_code} (channel {channel.id})")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
