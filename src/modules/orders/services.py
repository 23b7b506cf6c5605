"""Order service layer (Use Cases).

Orchestrates checkout, confirmation, cancellation and admin status
changes.  This is the only code that changes ``Order.status``; the
payment bridge calls into it for confirmations and refunds.

Business rules enforced:
- Checkout needs a non-empty cart and live stock for every line; stock
  is *not* debited until confirmation.
- Confirmation (payment, cash on delivery or admin) is allowed only from
  ``pending``/``payment_pending`` and debits every line from the ledger.
- Cancellation is allowed only before shipping and restores stock only
  when confirmation had debited it.
- Status transitions follow ``VALID_TRANSITIONS``; every change writes a
  history row and an outbox event.
- Only the owner or an admin may read or cancel an order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import AuthzError, ValidationError
from modules.core.permissions import is_admin
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.exceptions import EmptyCartError, InvalidOrderStatus, OrderNotFound
from modules.orders.pricing import compute_pricing
from modules.orders.sequencer import OrderNumberSequencer
from modules.products.exceptions import InsufficientStockError
from shared.infrastructure.bus import event_bus as default_event_bus
from shared.infrastructure.bus import publish_all

if TYPE_CHECKING:
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.core.conf import CommerceConfig
    from modules.orders.dtos import CheckoutDTO, UpdateStatusDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from shared.domain.bus import EventBus
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories, configuration and collaborators via
    constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
        config: CommerceConfig,
        sequencer: Optional[OrderNumberSequencer] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._orders = order_repository
        self._carts = cart_repository
        self._products = product_repository
        self._config = config
        self._sequencer = sequencer or OrderNumberSequencer.from_config(
            order_repository, config
        )
        self._bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, user, dto: CheckoutDTO) -> Order:
        """Turn the user's cart into a ``pending`` order.

        Steps:
        1. Load the cart with products; fail if it is empty.
        2. Re-check live stock for every line.
        3. Price the snapshot (subtotal, shipping, tax, total).
        4. Allocate an order number and insert the order, items and
           payment sub-record (retrying lost number races).
        5. Record history, write ``OrderCreated`` to the outbox, clear
           the cart.

        Raises:
            EmptyCartError: the cart has no items.
            InsufficientStockError: a line exceeds the variant's stock.
            SequenceExhausted: no order number could be allocated.
        """
        log = logger.bind(user_id=str(user.id))
        log.info("order.creation_started")

        cart = self._carts.get_for_user(user.id)
        cart_items = list(cart.items.all()) if cart else []
        if not cart_items:
            log.info("order.empty_cart")
            raise EmptyCartError()

        for item in cart_items:
            if not self._products.check_stock(
                str(item.product_id), item.color, item.size, item.quantity
            ):
                log.warning(
                    "order.insufficient_stock",
                    product_id=str(item.product_id),
                    color=item.color,
                    size=item.size,
                )
                raise InsufficientStockError(
                    f"Insufficient stock for {item.product.name} - "
                    f"{item.color} - {item.size}."
                )

        pricing = compute_pricing(
            ((item.price_at_add_time, item.quantity) for item in cart_items),
            self._config,
        )
        data = {
            "user_id": user.id,
            "subtotal": pricing.subtotal,
            "shipping_cost": pricing.shipping_cost,
            "tax_rate": pricing.tax_rate,
            "tax_amount": pricing.tax_amount,
            "discount": pricing.discount,
            "total": pricing.total,
            "shipping_address": dto.shipping_address.as_snapshot(),
            "billing_address": dto.effective_billing_address.as_snapshot(),
            "notes": dto.notes,
            "items": [self._snapshot_line(item) for item in cart_items],
        }

        with transaction.atomic():
            order = self._sequencer.claim(
                lambda number: self._orders.create({**data, "order_number": number})
            )
            self._orders.add_history(
                order_id=order.id,
                status=OrderStatus.PENDING,
                notes="Order created",
                user=user,
            )
            order.record_event(
                OrderCreated(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    user_id=str(user.id),
                    total=str(order.total),
                )
            )
            events = self.persist(order)
            self._carts.clear(cart)

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            total=str(order.total),
        )
        self.publish(events)
        return self._orders.get_by_id(str(order.id)) or order

    def cancel_order(self, actor, order_id, reason: str = "") -> Order:
        """Cancel an order and give back any stock it holds.

        Locks the order row first so two concurrent cancellations cannot
        both restore stock.

        Raises:
            OrderNotFound: order does not exist.
            AuthzError: actor is neither the owner nor an admin.
            InvalidOrderStatus: the order has shipped or is already closed.
        """
        with transaction.atomic():
            order = self._get_for_update_or_raise(order_id)
            self.authorize(actor, order)
            log = logger.bind(order_id=str(order.id), current_status=order.status)

            if not order.is_cancellable:
                log.warning("order.cancel_not_allowed")
                raise InvalidOrderStatus(
                    f"Order cannot be cancelled once it is {order.status}."
                )

            restored = order.stock_committed
            if restored:
                self._credit_stock(order)
                order.stock_committed = False

            old_status = order.status
            order.status = OrderStatus.CANCELLED
            order.cancelled_at = timezone.now()
            self._orders.add_history(
                order_id=order.id,
                status=OrderStatus.CANCELLED,
                notes=reason or "Order cancelled",
                old_status=old_status,
                user=actor,
            )
            order.record_event(
                OrderCancelled(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    old_status=old_status,
                    stock_restored=restored,
                )
            )
            events = self.persist(order)

        log.info("order.cancelled", stock_restored=restored)
        self.publish(events)
        return self._orders.get_by_id(str(order.id)) or order

    def update_status(self, actor, order_id, dto: UpdateStatusDTO) -> Order:
        """Admin status change validated against the transition table.

        ``cancelled`` goes through :meth:`cancel_order`; ``confirmed``
        debits stock like the payment paths; ``shipped`` needs a tracking
        number; ``delivered`` stamps ``delivered_at``.

        Raises:
            AuthzError: actor is not an admin.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
            ValidationError: shipping without a tracking number.
            InsufficientStockError: confirmation cannot debit the ledger.
        """
        if not is_admin(actor):
            raise AuthzError("Admin access required.")

        if dto.status == OrderStatus.CANCELLED:
            return self.cancel_order(actor, order_id, reason=dto.notes)

        with transaction.atomic():
            order = self._get_for_update_or_raise(order_id)
            log = logger.bind(
                order_id=str(order.id),
                current_status=order.status,
                new_status=dto.status,
            )

            if dto.status == OrderStatus.CONFIRMED:
                self.confirm(order, actor=actor, notes=dto.notes or "Confirmed by admin")
            else:
                if not order.can_transition_to(dto.status):
                    log.warning("order.invalid_transition")
                    raise InvalidOrderStatus(
                        f"Cannot transition from {order.status} to {dto.status}."
                    )
                if dto.tracking_number:
                    order.tracking_number = dto.tracking_number
                if dto.carrier:
                    order.carrier = dto.carrier
                if dto.status == OrderStatus.SHIPPED and not order.tracking_number:
                    raise ValidationError(
                        "Tracking number is required to mark an order as shipped.",
                        details=[{"attr": "tracking_number", "detail": "required"}],
                    )
                if dto.status == OrderStatus.DELIVERED:
                    order.delivered_at = timezone.now()
                self.transition(order, dto.status, actor=actor, notes=dto.notes)
            events = self.persist(order)

        log.info("order.status_updated")
        self.publish(events)
        return self._orders.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Transition primitives (shared with the payment bridge)
    #
    # These expect a row-locked order inside an open transaction; the
    # caller persists and publishes.
    # ------------------------------------------------------------------

    def confirm(self, order: Order, actor=None, notes: str = "") -> None:
        """Move a pending order to ``confirmed`` and debit its lines.

        Raises:
            InvalidOrderStatus: order is past the point of confirmation.
            InsufficientStockError: a line can no longer be covered; the
                surrounding transaction rolls back any earlier debits.
        """
        if not order.is_confirmable:
            raise InvalidOrderStatus(f"Order is already {order.status}.")
        if not order.stock_committed:
            self._debit_stock(order)
            order.stock_committed = True
        self.transition(order, OrderStatus.CONFIRMED, actor=actor, notes=notes)

    def refund(self, order: Order, notes: str = "") -> bool:
        """Move the order to ``refunded`` when the state machine allows it.

        Stock is not returned.  Returns ``False`` if the status was kept
        (e.g. the order had been cancelled already).
        """
        if not order.can_transition_to(OrderStatus.REFUNDED):
            logger.info(
                "order.refund_status_kept",
                order_id=str(order.id),
                status=order.status,
            )
            return False
        self.transition(order, OrderStatus.REFUNDED, notes=notes)
        return True

    def transition(self, order: Order, new_status: str, actor=None, notes: str = "") -> None:
        old_status = order.status
        order.status = new_status
        self._orders.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
            user=actor,
        )
        order.record_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                old_status=str(old_status),
                new_status=str(new_status),
                tracking_number=order.tracking_number,
                carrier=order.carrier,
            )
        )

    def persist(self, order: Order) -> List[DomainEvent]:
        """Save the order (flushing events to the outbox); return the events."""
        events = list(order.pending_events)
        self._orders.save(order)
        return events

    def publish(self, events: List[DomainEvent]) -> None:
        publish_all(events, self._bus)

    def authorize(self, actor, order: Order) -> None:
        """Owner or admin only; anything else is an authorization failure."""
        if is_admin(actor) or order.user_id == getattr(actor, "id", None):
            return
        logger.warning(
            "order.access_denied",
            order_id=str(order.id),
            actor_id=str(getattr(actor, "id", None)),
        )
        raise AuthzError()

    def get_for_update(self, order_id) -> Order:
        return self._get_for_update_or_raise(order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, actor, order_id) -> Order:
        """Retrieve a single order visible to ``actor``.

        Raises:
            OrderNotFound: if the order does not exist.
            AuthzError: actor is neither the owner nor an admin.
        """
        order = self._orders.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        self.authorize(actor, order)
        return order

    def list_orders(self, actor, status: Optional[str] = None):
        """The actor's own orders, newest first."""
        filters = {"user_id": actor.id}
        if status:
            filters["status"] = status
        return self._orders.list(filters).order_by("-created_at")

    def list_all_orders(self, status: Optional[str] = None):
        filters = {"status": status} if status else None
        return self._orders.list(filters).order_by("-created_at")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update_or_raise(self, order_id) -> Order:
        order = self._orders.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @staticmethod
    def _snapshot_line(item) -> dict:
        product = item.product
        record = product.variant(item.color, item.size)
        return {
            "product_id": product.id,
            "product_name": product.name,
            "product_image": product.primary_image,
            "color": item.color,
            "size": item.size,
            "sku": record.sku if record else product.fallback_sku(item.color, item.size),
            "quantity": item.quantity,
            "unit_price": item.price_at_add_time,
        }

    def _stock_lines(self, order: Order):
        # Fixed lock order across concurrent confirmations/cancellations.
        return sorted(
            (item for item in order.items.all() if item.product_id),
            key=lambda item: (str(item.product_id), item.color, item.size),
        )

    def _debit_stock(self, order: Order) -> None:
        for item in self._stock_lines(order):
            self._products.debit(str(item.product_id), item.color, item.size, item.quantity)
        logger.info("order.stock_committed", order_id=str(order.id))

    def _credit_stock(self, order: Order) -> None:
        for item in self._stock_lines(order):
            self._products.credit(str(item.product_id), item.color, item.size, item.quantity)
        logger.info("order.stock_restored", order_id=str(order.id))
