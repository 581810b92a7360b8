"""Minimal in-process publish/subscribe for domain events."""

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Type

from uservibe.domain.events.fetch_events import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Delivers events to handlers registered for their type (or a base type)."""

    def __init__(self):
        self._handlers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    # Subscriber errors never reach the publisher
                    logger.error(f"Event handler {handler!r} failed for {type(event).__name__}: {e}", exc_info=True)
