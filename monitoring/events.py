"""
In-process event bus.

``publish`` is fire-and-forget: each subscribed handler runs in its own
task and its failures are only logged.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Set, Union

from utils.logger import get_logger


logger = get_logger("EventBus")

Handler = Callable[[Any], Union[None, Awaitable[None]]]


class EventBus:
    """Topic → handlers fan-out."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()
        self.published = 0
        self.handler_errors = 0

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """
        Register ``handler`` for ``topic``.

        Returns:
            A callable that removes the subscription
        """
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers.get(topic, []):
                self._subscribers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> None:
        """Schedule every handler of ``topic``; never raises, never waits."""
        handlers = list(self._subscribers.get(topic, ()))
        self.published += 1
        for handler in handlers:
            task = asyncio.create_task(self._deliver(topic, handler, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, topic: str, handler: Handler, payload: Any) -> None:
        try:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.handler_errors += 1
            name = getattr(handler, "__qualname__", repr(handler))
            logger.exception(f"[EventBus] Handler {name} for '{topic}' failed: {e!r}")

    async def drain(self) -> None:
        """Wait for handlers already scheduled (used at shutdown and in tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
