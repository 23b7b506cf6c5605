"""Contracts between event publishers and their subscribers."""

from __future__ import annotations

from typing import Protocol, Type

from shared.domain.events import DomainEvent


class EventHandler(Protocol):
    def handle(self, event: DomainEvent) -> None: ...


class EventBus(Protocol):
    def subscribe(self, event_class: Type[DomainEvent], handler: EventHandler) -> None: ...

    def publish(self, event: DomainEvent) -> None: ...
