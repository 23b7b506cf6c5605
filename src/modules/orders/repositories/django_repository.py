"""Order repository backed by the Django ORM.

An order is written together with its line snapshots and an empty
payment sub-record.  Saving the aggregate drains the events it has
recorded into ``OutboxEvent`` rows inside the same transaction.
Locked reads use ``SELECT ... FOR UPDATE OF orders`` so relations can
be loaded without widening the lock.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem, OrderPayment, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"

_ORDER_FIELDS = (
    "order_number",
    "user_id",
    "subtotal",
    "shipping_cost",
    "tax_rate",
    "tax_amount",
    "discount",
    "total",
    "shipping_address",
    "billing_address",
)


def _orders(lock: bool = False) -> QuerySet[Order]:
    queryset = Order.objects.all()
    if lock:
        # Joined rows would be read from the pre-lock snapshot; prefetching
        # loads the payment only once the order row is held.
        return queryset.select_for_update(of=("self",)).prefetch_related(
            "payment", "items", "status_history"
        )
    return queryset.select_related("user", "payment").prefetch_related("items", "status_history")


class OrderDjangoRepository(IOrderRepository):
    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(notes=data.get("notes", ""), **{name: data[name] for name in _ORDER_FIELDS})
        order.save(force_insert=True)
        lines = [OrderItem(order=order, **line) for line in data.get("items", [])]
        for line in lines:
            line.save()  # fills in subtotal
        OrderPayment.objects.create(order=order)
        logger.info(
            "order.persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(lines),
        )
        return order

    def _first(self, lock: bool = False, **lookup) -> Optional[Order]:
        try:
            return _orders(lock).filter(**lookup).first()
        except (ValueError, ValidationError):
            return None

    def get_by_id(self, id: str) -> Optional[Order]:
        return self._first(id=id)

    def get_for_update(self, id: str) -> Optional[Order]:
        """Row-locked read; only valid inside ``transaction.atomic``."""
        return self._first(lock=True, id=id)

    def get_by_gateway_order_id(self, gateway_order_id: str, for_update: bool = False) -> Optional[Order]:
        if not gateway_order_id:
            return None
        return self._first(lock=for_update, payment__gateway_order_id=gateway_order_id)

    def get_by_gateway_payment_id(self, gateway_payment_id: str, for_update: bool = False) -> Optional[Order]:
        if not gateway_payment_id:
            return None
        return self._first(lock=for_update, payment__gateway_payment_id=gateway_payment_id)

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        return _orders().filter(**(filters or {}))

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        events = entity.pull_events()
        OutboxEvent.objects.bulk_create(
            OutboxEvent(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
            for event in events
        )
        logger.info("order.saved", order_id=str(entity.id), status=entity.status, event_count=len(events))
        return entity

    @transaction.atomic
    def save_payment(self, payment: OrderPayment) -> OrderPayment:
        payment.save()
        logger.info(
            "order.payment_saved",
            order_id=str(payment.order_id),
            method=payment.method,
            status=payment.status,
        )
        return payment

    def add_history(
        self,
        order_id,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user=None,
    ) -> OrderStatusHistory:
        actor = user if getattr(user, "is_authenticated", False) else None
        return OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            notes=notes,
            user=actor,
        )

    def latest_order_number(self, prefix: str) -> Optional[str]:
        return (
            Order.objects.filter(order_number__startswith=prefix)
            .order_by("-order_number")
            .values_list("order_number", flat=True)
            .first()
        )

    def order_number_exists(self, order_number: str) -> bool:
        return Order.objects.filter(order_number=order_number).exists()
