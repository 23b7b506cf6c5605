"""Domain events for the Orders bounded context.

Events are collected on the ``Order`` aggregate, written to the
outbox when the order is saved and published on the in-process bus
once the service's unit of work has finished.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when checkout persists a new order."""

    order_number: str = ""
    user_id: str = ""
    total: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every lifecycle transition except cancellation."""

    order_number: str = ""
    old_status: str = ""
    new_status: str = ""
    tracking_number: str = ""
    carrier: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled; ``stock_restored`` tells if the ledger was credited."""

    order_number: str = ""
    old_status: str = ""
    stock_restored: bool = False
