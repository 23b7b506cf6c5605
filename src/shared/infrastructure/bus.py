"""Synchronous in-process delivery of domain events.

A handler subscribed to an event class also receives its subclasses.
Handlers run in subscription order on the publishing thread; a handler
that must not disturb the publisher catches its own errors.
"""

from __future__ import annotations

from collections import defaultdict
from typing import DefaultDict, Iterable, List, Type

import structlog

from shared.domain.bus import EventBus, EventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class LocalEventBus:
    def __init__(self) -> None:
        self._subscribers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_class: Type[DomainEvent], handler: EventHandler) -> None:
        if handler not in self._subscribers[event_class]:
            self._subscribers[event_class].append(handler)

    def handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        for cls in type(event).__mro__:
            handlers.extend(self._subscribers.get(cls, ()))
        return handlers

    def publish(self, event: DomainEvent) -> None:
        handlers = self.handlers_for(event)
        logger.debug(
            "event.published",
            event_name=event.event_name,
            aggregate_id=str(event.aggregate_id),
            handler_count=len(handlers),
        )
        for handler in handlers:
            handler.handle(event)


event_bus = LocalEventBus()


def publish_all(events: Iterable[DomainEvent], bus: EventBus = event_bus) -> None:
    """Deliver the events of a committed unit of work, in the order they were raised."""
    for event in events:
        bus.publish(event)
