"""Concurrency integration tests for checkout and payment confirmation.

Scenarios:
- Five customers check out at the same moment in one month bucket; every
  order gets its own number and the numbers run 0001..0005.
- The ``payment.captured`` webhook and the client's verification arrive
  together for one order; stock is debited once and one e-mail goes out.

Uses ``TransactionTestCase`` so each thread sees committed data and
opens its own connection.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from decimal import Decimal

import django
import pytest
from django.contrib.auth import get_user_model
from django.test import TransactionTestCase

from modules.carts.dtos import AddCartItemDTO
from modules.carts.repositories import CartDjangoRepository
from modules.carts.services import CartService
from modules.core.conf import CommerceConfig
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.dtos import CheckoutDTO
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.sequencer import OrderNumberSequencer
from modules.orders.services import OrderService
from modules.payments.dtos import VerifyPaymentDTO
from modules.payments.services import PaymentService
from modules.payments.signatures import payment_signature
from modules.products.models import InventoryRecord, Product
from modules.products.repositories import ProductDjangoRepository

pytestmark = pytest.mark.integration

User = get_user_model()

NUM_WORKERS = 5
JUNE = datetime(2025, 6, 15, 12, 0)
ADDRESS = {
    "full_name": "Asha Rao",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


def _order_service(clock=None) -> OrderService:
    config = CommerceConfig.from_settings()
    repo = OrderDjangoRepository()
    sequencer = None
    if clock is not None:
        sequencer = OrderNumberSequencer.from_config(repo, config, clock=clock)
    return OrderService(
        repo, CartDjangoRepository(), ProductDjangoRepository(), config, sequencer=sequencer
    )


class _StorefrontTransactionTestCase(TransactionTestCase):
    @pytest.fixture(autouse=True)
    def _outbox(self, email_sender):
        self.email_sender = email_sender

    def setUp(self):
        self.product = Product.objects.create(
            name="Spiral Tie-Dye Tee",
            slug="spiral-tie-dye-tee",
            category="t-shirts",
            price=Decimal("899.00"),
            colors=["Rainbow"],
            sizes=["M"],
        )
        self.variant = InventoryRecord.objects.create(
            product=self.product, color="Rainbow", size="M", stock=10, sku="TEE-RAINBOW-M"
        )
        self.carts = CartService(
            CartDjangoRepository(), ProductDjangoRepository(), CommerceConfig.from_settings()
        )

    def _customer(self, n: int):
        user = User.objects.create_user(
            username=f"buyer{n}@example.com",
            email=f"buyer{n}@example.com",
            password="Str0ng-Passw0rd!",
        )
        self.carts.add_item(
            user,
            AddCartItemDTO(product_id=self.product.id, color="Rainbow", size="M", quantity=2),
        )
        return user


class TestCheckoutNumbering(_StorefrontTransactionTestCase):
    """Concurrent checkouts in one month bucket never share a number."""

    def _checkout_in_thread(self, user) -> str:
        try:
            service = _order_service(clock=lambda: JUNE)
            order = service.create_order(user, CheckoutDTO(shipping_address=dict(ADDRESS)))
            return order.order_number
        finally:
            django.db.connections.close_all()

    def test_concurrent_checkouts_get_distinct_numbers(self):
        buyers = [self._customer(n) for n in range(NUM_WORKERS)]

        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(self._checkout_in_thread, buyer) for buyer in buyers]
            numbers = [future.result() for future in as_completed(futures)]

        self.assertEqual(
            sorted(numbers),
            [f"MDD2506{n:04d}" for n in range(1, NUM_WORKERS + 1)],
        )
        self.assertEqual(Order.objects.count(), NUM_WORKERS)
        # Checkout reserves nothing; stock moves on confirmation.
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 10)


class TestCaptureAndVerifyRace(_StorefrontTransactionTestCase):
    """Webhook capture and client verification converge on one confirmation."""

    def setUp(self):
        super().setUp()
        self.buyer = self._customer(1)
        self.order = _order_service().create_order(
            self.buyer, CheckoutDTO(shipping_address=dict(ADDRESS))
        )
        intent = self._payments().create_payment_intent(self.buyer, self.order.id)
        self.gateway_order_id = intent["gateway_order_id"]

    @staticmethod
    def _payments() -> PaymentService:
        return PaymentService(OrderDjangoRepository(), _order_service(), CommerceConfig.from_settings())

    def _verify_in_thread(self) -> str:
        try:
            dto = VerifyPaymentDTO(
                order_id=self.order.id,
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id="pay_Race1",
                signature=payment_signature("test-key-secret", self.gateway_order_id, "pay_Race1"),
            )
            return self._payments().verify_payment(self.buyer, dto).status
        finally:
            django.db.connections.close_all()

    def _webhook_in_thread(self) -> str:
        try:
            entity = {
                "id": "pay_Race1",
                "order_id": self.gateway_order_id,
                "amount": 183800,
                "notes": {"order_id": str(self.order.id)},
            }
            body = json.dumps(
                {"event": "payment.captured", "payload": {"payment": {"entity": entity}}}
            ).encode()
            signature = hmac.new(b"test-webhook-secret", body, hashlib.sha256).hexdigest()
            self._payments().handle_webhook(body, signature)
            return "delivered"
        finally:
            django.db.connections.close_all()

    def test_one_debit_and_one_email(self):
        with ThreadPoolExecutor(max_workers=2) as pool:
            verified = pool.submit(self._verify_in_thread)
            delivered = pool.submit(self._webhook_in_thread)
            self.assertEqual(verified.result(), OrderStatus.CONFIRMED)
            self.assertEqual(delivered.result(), "delivered")

        order = Order.objects.select_related("payment").get(pk=self.order.pk)
        self.assertEqual(order.status, OrderStatus.CONFIRMED)
        self.assertEqual(order.payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(order.payment.gateway_payment_id, "pay_Race1")
        self.assertTrue(order.stock_committed)

        self.variant.refresh_from_db()
        self.assertEqual(self.variant.stock, 8)
        self.assertEqual(len(self.email_sender.outbox), 1)
        self.assertEqual(
            OrderStatusHistory.objects.filter(
                order=order, new_status=OrderStatus.CONFIRMED
            ).count(),
            1,
        )
