"""
Channel provider base class and the provider registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from exceptions import NotificationDeliveryError
from monitoring.models import NotificationChannel
from utils.logger import get_logger


logger = get_logger("Providers")


class BaseProvider(ABC):
    """
    Delivers a formatted message to one channel.

    ``send`` raises on failure; the dispatcher owns timeouts, retries and
    error isolation.
    """

    type: str

    @abstractmethod
    async def send(self, channel: NotificationChannel, message: str) -> None:
        """Deliver ``message`` to ``channel``."""

    async def close(self) -> None:
        """Release network resources held by the provider."""

    def require(self, channel: NotificationChannel, key: str) -> str:
        """Fetch a mandatory config value or raise a delivery error."""
        value = (channel.config or {}).get(key)
        if value in (None, ""):
            raise NotificationDeliveryError(
                f"Channel '{channel.name}' is missing '{key}'",
                channel_id=channel.id,
                channel_type=channel.type,
            )
        return str(value)


class ProviderRegistry:
    """Channel type → provider lookup."""

    def __init__(self, providers: Optional[Iterable[BaseProvider]] = None):
        self._providers: Dict[str, BaseProvider] = {}
        for provider in providers or ():
            self.register(provider)

    def register(self, provider: BaseProvider) -> None:
        self._providers[provider.type] = provider
        logger.debug(f"[Providers] Registered '{provider.type}' provider")

    def get(self, channel_type: str) -> Optional[BaseProvider]:
        return self._providers.get(channel_type)

    def types(self) -> List[str]:
        return sorted(self._providers)

    async def close(self) -> None:
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"[Providers] Closing '{provider.type}' failed: {e!r}")
