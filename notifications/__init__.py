"""
Notification channel providers.

    • BaseProvider / ProviderRegistry  — provider contract and lookup
    • MessageFormatter                 — HTML message for a heartbeat
    • TelegramProvider                 — aiogram Bot API delivery
    • WebhookProvider                  — httpx JSON POST
    • LogProvider                      — writes the alert to the log
"""

from typing import Optional

from notifications.base import BaseProvider, ProviderRegistry
from notifications.formatter import MessageFormatter
from notifications.log import LogProvider
from notifications.telegram import TelegramProvider
from notifications.webhook import WebhookProvider


def build_default_providers(telegram_token: Optional[str] = None) -> ProviderRegistry:
    """Registry holding the telegram, webhook and log providers."""
    return ProviderRegistry(
        [TelegramProvider(default_token=telegram_token), WebhookProvider(), LogProvider()]
    )


__all__ = [
    "BaseProvider",
    "ProviderRegistry",
    "MessageFormatter",
    "TelegramProvider",
    "WebhookProvider",
    "LogProvider",
    "build_default_providers",
]
