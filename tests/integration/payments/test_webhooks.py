"""Integration tests for gateway webhooks.

Covers:
- payment.captured confirms the order exactly once, even when redelivered
- Webhook and client verification converge on the same completed payment
- Order located by notes.order_id or by the gateway order id
- Captured payment for a cancelled order is recorded without reopening it
- payment.failed and refund.created update the payment sub-record
- Bad signatures are rejected; unknown events and broken payloads are absorbed
"""

import hashlib
import hmac
import json

import pytest

from modules.core.conf import CommerceConfig
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository
from modules.payments.dtos import VerifyPaymentDTO
from modules.payments.exceptions import InvalidSignature
from modules.payments.services import PaymentService
from modules.payments.signatures import payment_signature

pytestmark = pytest.mark.integration

WEBHOOK_SECRET = b"test-webhook-secret"


def _signed(event):
    body = json.dumps(event).encode()
    return body, hmac.new(WEBHOOK_SECRET, body, hashlib.sha256).hexdigest()


def _captured(gateway_order_id, order_id=None, payment_id="pay_W1"):
    entity = {"id": payment_id, "order_id": gateway_order_id, "amount": 222200, "notes": {}}
    if order_id:
        entity["notes"] = {"order_id": str(order_id)}
    return {"event": "payment.captured", "payload": {"payment": {"entity": entity}}}


@pytest.fixture()
def intent_order(user, product, place_order, payment_service):
    order = place_order(user, product, quantity=2)
    intent = payment_service.create_payment_intent(user, order.id)
    return order, intent["gateway_order_id"]


@pytest.fixture()
def deliver(payment_service):
    def _deliver(event):
        body, signature = _signed(event)
        payment_service.handle_webhook(body, signature)

    return _deliver


class TestPaymentCaptured:
    def test_confirms_order(self, intent_order, deliver, product, stock_of, email_sender):
        order, gateway_order_id = intent_order

        deliver(_captured(gateway_order_id, order.id))

        order = Order.objects.select_related("payment").get(pk=order.pk)
        assert order.status == OrderStatus.CONFIRMED
        assert order.payment.status == PaymentStatus.COMPLETED
        assert order.payment.gateway_payment_id == "pay_W1"
        assert stock_of(product) == 8
        assert len(email_sender.outbox) == 1

    def test_redelivery_is_idempotent(self, intent_order, deliver, product, stock_of, email_sender):
        order, gateway_order_id = intent_order

        deliver(_captured(gateway_order_id, order.id))
        deliver(_captured(gateway_order_id, order.id))

        assert stock_of(product) == 8
        assert len(email_sender.outbox) == 1
        assert Order.objects.get(pk=order.pk).status_history.filter(
            new_status=OrderStatus.CONFIRMED
        ).count() == 1

    def test_located_by_gateway_order_id(self, intent_order, deliver):
        order, gateway_order_id = intent_order

        deliver(_captured(gateway_order_id))

        assert Order.objects.get(pk=order.pk).status == OrderStatus.CONFIRMED

    def test_webhook_after_client_verification(self, user, intent_order, deliver, payment_service, product, stock_of, email_sender):
        order, gateway_order_id = intent_order
        payment_service.verify_payment(
            user,
            VerifyPaymentDTO(
                order_id=order.id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id="pay_W1",
                signature=payment_signature("test-key-secret", gateway_order_id, "pay_W1"),
            ),
        )

        deliver(_captured(gateway_order_id, order.id))

        assert stock_of(product) == 8
        assert len(email_sender.outbox) == 1

    def test_client_verification_after_webhook(self, user, intent_order, deliver, payment_service, product, stock_of):
        order, gateway_order_id = intent_order
        deliver(_captured(gateway_order_id, order.id))

        again = payment_service.verify_payment(
            user,
            VerifyPaymentDTO(
                order_id=order.id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id="pay_W1",
                signature=payment_signature("test-key-secret", gateway_order_id, "pay_W1"),
            ),
        )

        assert again.status == OrderStatus.CONFIRMED
        assert stock_of(product) == 8

    def test_cancelled_order_is_not_reopened(self, user, intent_order, deliver, order_service, product, stock_of):
        order, gateway_order_id = intent_order
        order_service.cancel_order(user, order.id)

        deliver(_captured(gateway_order_id, order.id))

        order = Order.objects.select_related("payment").get(pk=order.pk)
        assert order.status == OrderStatus.CANCELLED
        assert order.payment.status == PaymentStatus.COMPLETED
        assert stock_of(product) == 10

    def test_unknown_order_is_ignored(self, deliver):
        deliver(_captured("order_unknown"))
        assert not Order.objects.filter(status=OrderStatus.CONFIRMED).exists()


class TestOtherEvents:
    def test_payment_failed(self, intent_order, deliver):
        order, gateway_order_id = intent_order
        event = _captured(gateway_order_id, order.id)
        event["event"] = "payment.failed"
        event["payload"]["payment"]["entity"]["error_description"] = "Card declined by bank"

        deliver(event)

        order = Order.objects.select_related("payment").get(pk=order.pk)
        assert order.status == OrderStatus.PENDING
        assert order.payment.status == PaymentStatus.FAILED
        assert order.payment.failure_reason == "Card declined by bank"

    def test_refund_created(self, intent_order, deliver, product, stock_of):
        order, gateway_order_id = intent_order
        deliver(_captured(gateway_order_id, order.id, payment_id="pay_R1"))
        refund = {
            "event": "refund.created",
            "payload": {"refund": {"entity": {"id": "rfnd_1", "payment_id": "pay_R1"}}},
        }

        deliver(refund)
        deliver(refund)

        order = Order.objects.select_related("payment").get(pk=order.pk)
        assert order.status == OrderStatus.REFUNDED
        assert order.payment.status == PaymentStatus.REFUNDED
        assert order.status_history.filter(new_status=OrderStatus.REFUNDED).count() == 1
        assert stock_of(product) == 8

    def test_unknown_event_is_ignored(self, intent_order, deliver):
        order, _ = intent_order

        deliver({"event": "order.paid", "payload": {}})

        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING


class TestWebhookAuthentication:
    def test_bad_signature_rejected(self, intent_order, payment_service):
        order, gateway_order_id = intent_order
        body, _ = _signed(_captured(gateway_order_id, order.id))

        with pytest.raises(InvalidSignature):
            payment_service.handle_webhook(body, "f" * 64)
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING

    def test_missing_secret_rejects_everything(self, settings, intent_order, order_service, gateway):
        settings.RAZORPAY_WEBHOOK_SECRET = ""
        service = PaymentService(
            OrderDjangoRepository(), order_service, CommerceConfig.from_settings(), gateway=gateway
        )
        order, gateway_order_id = intent_order
        body, signature = _signed(_captured(gateway_order_id, order.id))

        with pytest.raises(InvalidSignature):
            service.handle_webhook(body, signature)

    def test_malformed_body_is_absorbed(self, payment_service):
        body = b"not json"
        signature = hmac.new(WEBHOOK_SECRET, body, hashlib.sha256).hexdigest()
        payment_service.handle_webhook(body, signature)

    def test_processing_error_is_absorbed(self, deliver):
        deliver({"event": "payment.captured", "payload": {}})
