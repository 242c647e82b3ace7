"""
Data Ingestion - Event Bus.

============================================================
PURPOSE
============================================================
Publish/subscribe channel for ingestion notifications.

The ingestion service publishes; logging, notification and
anchoring collaborators subscribe. Neither side knows the
other. The bus is passed in at construction, never global.

============================================================
EVENTS
============================================================
- trend:discovered  payload: the newly created Trend

============================================================
DELIVERY
============================================================
- Subscribers run in subscription order
- Sync and async handlers are both accepted
- A failing subscriber is logged and skipped; it never
  fails the publisher or the remaining subscribers

============================================================
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Union


EVENT_NEW_TREND = "trend:discovered"

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class IngestionEventBus:
    """In-process observer list keyed by event name."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._logger = logging.getLogger("event_bus")

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register a handler; duplicate registrations are ignored."""
        if handler in self._handlers[event]:
            return
        self._handlers[event].append(handler)
        self._logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event}")

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def subscriber_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def publish(self, event: str, payload: Any) -> int:
        """
        Deliver an event to every subscriber.

        Returns:
            Number of handlers that completed without error
        """
        delivered = 0
        for handler in list(self._handlers.get(event, [])):
            try:
                outcome = handler(payload)
                if inspect.isawaitable(outcome):
                    await outcome
                delivered += 1
            except Exception as e:
                self._logger.error(
                    f"Subscriber {getattr(handler, '__name__', handler)} failed on {event}: {e}",
                    exc_info=True,
                )
        return delivered
