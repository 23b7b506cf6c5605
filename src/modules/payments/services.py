"""Payment bridge service layer (Use Cases).

Connects the gateway to the order workflow.  Every path that marks a
payment ``completed`` (client verification, ``payment.captured``
webhook, cash on delivery) confirms the order through
``OrderService.confirm``, which is the single place live stock is
debited.

Business rules enforced:
- Only the order's owner may start, verify or settle its payment.
- A bad signature changes nothing.
- A payment already ``completed`` is never applied again; the direct
  verification and the webhook converge on that guard.
- Webhook processing errors are logged, never propagated.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import AuthzError
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.payments.exceptions import (
    InvalidSignature,
    PaymentAlreadyCompleted,
    PaymentMismatch,
)
from modules.payments.gateway import get_gateway
from modules.payments.signatures import verify_payment_signature, verify_webhook_signature

if TYPE_CHECKING:
    from modules.core.conf import CommerceConfig
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService
    from modules.payments.dtos import VerifyPaymentDTO
    from modules.payments.gateway.port import PaymentGateway

logger = structlog.get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise."""
    return int((amount * 100).quantize(Decimal("1")))


class PaymentService:
    """Application service for the payment bridge.

    Receives the order repository, the order workflow, configuration and
    the gateway via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        order_service: OrderService,
        config: CommerceConfig,
        gateway: Optional[PaymentGateway] = None,
    ) -> None:
        self._orders = order_repository
        self._workflow = order_service
        self._config = config
        self._gateway = gateway or get_gateway()
        self._webhook_handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "payment.captured": self._on_payment_captured,
            "payment.failed": self._on_payment_failed,
            "refund.created": self._on_refund_created,
        }

    # ------------------------------------------------------------------
    # Client-driven flow
    # ------------------------------------------------------------------

    def create_payment_intent(self, actor, order_id) -> Dict[str, Any]:
        """Create the gateway order the client pays against.

        Stores the gateway reference on the payment sub-record and leaves
        the order status untouched.

        Raises:
            OrderNotFound, AuthzError
            PaymentAlreadyCompleted: the order is already paid.
            InvalidOrderStatus: the order is cancelled or refunded.
            UpstreamError: the gateway call failed.
        """
        with transaction.atomic():
            order = self._get_for_update(order_id)
            self._ensure_owner(actor, order)
            payment = order.payment
            if payment.is_completed:
                raise PaymentAlreadyCompleted()
            if order.is_terminal:
                raise InvalidOrderStatus(f"Order is {order.status}.")

            gateway_order = self._gateway.create_order(
                amount=to_minor_units(order.total),
                currency=self._config.currency,
                receipt=order.order_number,
                notes={"order_id": str(order.id), "order_number": order.order_number},
            )
            payment.method = PaymentMethod.RAZORPAY
            payment.status = PaymentStatus.PENDING
            payment.gateway_order_id = gateway_order.id
            self._orders.save_payment(payment)

        logger.info(
            "payment.intent_created",
            order_id=str(order.id),
            gateway_order_id=gateway_order.id,
            amount=gateway_order.amount,
        )
        return {
            "gateway_order_id": gateway_order.id,
            "amount": gateway_order.amount,
            "currency": gateway_order.currency,
            "key_id": self._config.gateway_key_id,
            "order_number": order.order_number,
        }

    def verify_payment(self, actor, dto: VerifyPaymentDTO) -> Order:
        """Check the checkout signature and confirm the order.

        A second verification of an already completed payment returns the
        order unchanged.

        Raises:
            OrderNotFound, AuthzError
            InvalidSignature: signature mismatch; nothing is written.
            PaymentMismatch: the gateway order belongs to another order.
            InvalidOrderStatus: the order can no longer be confirmed.
            InsufficientStockError: a line can no longer be debited.
        """
        log = logger.bind(order_id=str(dto.order_id), gateway_order_id=dto.gateway_order_id)

        with transaction.atomic():
            order = self._get_for_update(dto.order_id)
            self._ensure_owner(actor, order)

            if not verify_payment_signature(
                self._config.gateway_key_secret,
                dto.gateway_order_id,
                dto.gateway_payment_id,
                dto.signature,
            ):
                log.warning("payment.signature_invalid")
                raise InvalidSignature()

            payment = order.payment
            # A valid signature only proves payment for the gateway order it
            # names; it must be the one issued for this order.
            if not payment.gateway_order_id or payment.gateway_order_id != dto.gateway_order_id:
                log.warning("payment.gateway_order_mismatch")
                raise PaymentMismatch()

            if payment.is_completed:
                log.info("payment.already_completed")
                return order
            if not order.is_confirmable:
                raise InvalidOrderStatus(f"Order is already {order.status}.")

            self._mark_completed(order, dto.gateway_order_id, dto.gateway_payment_id)
            self._workflow.confirm(order, actor=actor, notes="Payment verified")
            events = self._workflow.persist(order)

        log.info("payment.verified", gateway_payment_id=dto.gateway_payment_id)
        self._workflow.publish(events)
        return self._orders.get_by_id(str(order.id)) or order

    def confirm_cod(self, actor, order_id) -> Order:
        """Confirm a cash-on-delivery order; payment stays ``pending``.

        Raises:
            OrderNotFound, AuthzError
            InvalidOrderStatus: the order is no longer ``pending``.
            InsufficientStockError: a line can no longer be debited.
        """
        with transaction.atomic():
            order = self._get_for_update(order_id)
            self._ensure_owner(actor, order)
            if order.status != OrderStatus.PENDING:
                raise InvalidOrderStatus("Order is already processed.")

            payment = order.payment
            payment.method = PaymentMethod.COD
            payment.status = PaymentStatus.PENDING
            self._orders.save_payment(payment)
            self._workflow.confirm(order, actor=actor, notes="Cash on delivery")
            events = self._workflow.persist(order)

        logger.info("payment.cod_confirmed", order_id=str(order.id))
        self._workflow.publish(events)
        return self._orders.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Webhook channel
    # ------------------------------------------------------------------

    def handle_webhook(self, raw_body: bytes, signature: str) -> None:
        """Authenticate and apply a gateway webhook.

        Raises ``InvalidSignature`` for an unauthenticated body; every
        other failure is logged and swallowed so the gateway sees a 200.
        """
        if not verify_webhook_signature(self._config.webhook_secret, raw_body, signature):
            logger.warning("webhook.signature_invalid")
            raise InvalidSignature("Invalid webhook signature.")

        try:
            event = json.loads(raw_body)
            event_name = event.get("event", "")
            payload = event.get("payload") or {}
        except (ValueError, AttributeError):
            logger.exception("webhook.malformed_body")
            return

        handler = self._webhook_handlers.get(event_name)
        if handler is None:
            logger.info("webhook.ignored", event_name=event_name)
            return

        log = logger.bind(event_name=event_name)
        try:
            handler(payload)
        except Exception:
            log.exception("webhook.processing_failed")
            return
        log.info("webhook.processed")

    def _on_payment_captured(self, payload: Dict[str, Any]) -> None:
        entity = payload["payment"]["entity"]
        with transaction.atomic():
            order = self._locate_captured_order(entity)
            if order is None:
                logger.info("webhook.order_not_found", gateway_order_id=entity.get("order_id"))
                return
            payment = order.payment
            if payment.is_completed:
                logger.info("webhook.duplicate", order_id=str(order.id))
                return

            self._mark_completed(order, entity.get("order_id") or "", entity["id"])
            if order.is_confirmable:
                self._workflow.confirm(order, notes="Payment captured")
            else:
                logger.warning(
                    "payment.captured_for_closed_order",
                    order_id=str(order.id),
                    status=order.status,
                )
            events = self._workflow.persist(order)

        self._workflow.publish(events)

    def _on_payment_failed(self, payload: Dict[str, Any]) -> None:
        entity = payload["payment"]["entity"]
        with transaction.atomic():
            order = self._locate_captured_order(entity)
            if order is None:
                return
            payment = order.payment
            if payment.status != PaymentStatus.PENDING:
                logger.info("webhook.duplicate", order_id=str(order.id), status=payment.status)
                return
            payment.status = PaymentStatus.FAILED
            payment.failure_reason = (entity.get("error_description") or "")[:255]
            self._orders.save_payment(payment)
        logger.info("payment.failed", order_id=str(order.id))

    def _on_refund_created(self, payload: Dict[str, Any]) -> None:
        entity = payload["refund"]["entity"]
        with transaction.atomic():
            order = self._orders.get_by_gateway_payment_id(
                entity.get("payment_id", ""), for_update=True
            )
            if order is None:
                logger.info("webhook.order_not_found", gateway_payment_id=entity.get("payment_id"))
                return
            payment = order.payment
            if payment.status == PaymentStatus.REFUNDED:
                logger.info("webhook.duplicate", order_id=str(order.id))
                return
            payment.status = PaymentStatus.REFUNDED
            self._orders.save_payment(payment)
            self._workflow.refund(order, notes="Refund created")
            events = self._workflow.persist(order)

        logger.info("payment.refunded", order_id=str(order.id))
        self._workflow.publish(events)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update(self, order_id) -> Order:
        order = self._orders.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @staticmethod
    def _ensure_owner(actor, order: Order) -> None:
        if order.user_id != getattr(actor, "id", None):
            logger.warning(
                "payment.access_denied",
                order_id=str(order.id),
                actor_id=str(getattr(actor, "id", None)),
            )
            raise AuthzError()

    def _locate_captured_order(self, entity: Dict[str, Any]) -> Optional[Order]:
        order_id = (entity.get("notes") or {}).get("order_id")
        if order_id:
            order = self._orders.get_for_update(str(order_id))
            if order is not None:
                return order
        return self._orders.get_by_gateway_order_id(entity.get("order_id", ""), for_update=True)

    def _mark_completed(self, order: Order, gateway_order_id: str, gateway_payment_id: str) -> None:
        payment = order.payment
        payment.method = PaymentMethod.RAZORPAY
        payment.status = PaymentStatus.COMPLETED
        if gateway_order_id:
            payment.gateway_order_id = gateway_order_id
        payment.gateway_payment_id = gateway_payment_id
        payment.paid_at = timezone.now()
        payment.failure_reason = ""
        self._orders.save_payment(payment)
