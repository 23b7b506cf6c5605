"""Integration tests for OrderService.create_order (checkout).

Covers:
- Cart is converted into a pending order with priced, snapshotted lines
- Order numbers follow <prefix><YY><MM><NNNN> and increase within a month
- Stock is re-checked but not debited at checkout
- Cart is cleared; history and outbox rows are written in the same unit of work
- Empty cart and insufficient stock leave no order behind
"""

import re
from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from modules.carts.models import CartItem
from modules.carts.repositories import CartDjangoRepository
from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.dtos import CheckoutDTO
from modules.orders.exceptions import EmptyCartError
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.sequencer import OrderNumberSequencer
from modules.orders.services import OrderService
from modules.products.exceptions import InsufficientStockError
from modules.products.models import InventoryRecord
from modules.products.repositories import ProductDjangoRepository

pytestmark = pytest.mark.integration


class TestCreateOrder:
    def test_prices_small_order(self, user, product, place_order):
        order = place_order(user, product, quantity=2)

        assert order.status == OrderStatus.PENDING
        assert order.subtotal == Decimal("1798.00")
        assert order.shipping_cost == Decimal("100.00")
        assert order.tax_rate == Decimal("18.00")
        assert order.tax_amount == Decimal("324.00")
        assert order.total == Decimal("2222.00")

    def test_order_number_format(self, user, product, place_order):
        order = place_order(user, product)
        assert re.fullmatch(r"MDD\d{4}\d{4}", order.order_number)

    def test_lines_are_snapshotted(self, user, product, place_order):
        order = place_order(user, product, quantity=2, color="Blue", size="L")
        item = order.items.get()

        assert item.product_id == product.id
        assert item.product_name == product.name
        assert item.product_image == product.images[0]
        assert item.sku == "TEE1-BLUE-L"
        assert item.unit_price == Decimal("899.00")
        assert item.subtotal == Decimal("1798.00")

        product.name = "Renamed Tee"
        product.price = Decimal("1299.00")
        product.save()
        item.refresh_from_db()
        assert item.product_name == "Spiral Tie-Dye Tee 1"
        assert item.unit_price == Decimal("899.00")

    def test_price_at_add_time_is_charged(self, user, product, fill_cart, order_service, address):
        fill_cart(user, product, quantity=1)
        product.price = Decimal("1500.00")
        product.save()

        order = order_service.create_order(user, CheckoutDTO(shipping_address=address))

        assert order.subtotal == Decimal("899.00")

    def test_addresses_are_stored(self, user, product, fill_cart, order_service, address):
        fill_cart(user, product)
        billing = dict(address, city="Mysuru", phone="+91 98450 12345")
        order = order_service.create_order(
            user,
            CheckoutDTO(
                shipping_address=address,
                billing_address=billing,
                use_same_address=False,
                notes="Leave at the gate",
            ),
        )

        assert order.shipping_address["city"] == "Bengaluru"
        assert order.billing_address["city"] == "Mysuru"
        assert order.billing_address["phone"] == "+919845012345"
        assert order.notes == "Leave at the gate"

    def test_stock_is_not_debited(self, user, product, place_order, stock_of):
        place_order(user, product, quantity=3)
        assert stock_of(product) == 10

    def test_cart_is_cleared(self, user, product, place_order):
        place_order(user, product)
        assert not CartItem.objects.filter(cart__user=user).exists()

    def test_payment_record_starts_unset(self, user, product, place_order):
        order = place_order(user, product)

        assert order.payment.method == PaymentMethod.UNSET
        assert order.payment.status == PaymentStatus.PENDING
        assert order.stock_committed is False

    def test_history_and_outbox(self, user, product, place_order):
        order = place_order(user, product)

        history = list(order.status_history.all())
        assert len(history) == 1
        assert history[0].new_status == OrderStatus.PENDING
        assert history[0].notes == "Order created"
        assert history[0].user_id == user.id

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderCreated"
        assert event.topic == "orders"
        assert event.payload["order_number"] == order.order_number
        assert event.payload["total"] == "2222.00"


class TestCheckoutRejections:
    def test_empty_cart(self, user, order_service, address):
        with pytest.raises(EmptyCartError):
            order_service.create_order(user, CheckoutDTO(shipping_address=address))
        assert Order.objects.count() == 0

    def test_insufficient_stock(self, user, product, fill_cart, order_service, address):
        fill_cart(user, product, quantity=3)
        InventoryRecord.objects.filter(product=product, color="Rainbow", size="M").update(stock=2)

        with pytest.raises(InsufficientStockError, match="Rainbow - M"):
            order_service.create_order(user, CheckoutDTO(shipping_address=address))

        assert Order.objects.count() == 0
        assert CartItem.objects.filter(cart__user=user).count() == 1


class TestOrderNumbering:
    @pytest.fixture()
    def june_service(self, config):
        orders = OrderDjangoRepository()
        sequencer = OrderNumberSequencer.from_config(
            orders,
            config,
            clock=lambda: datetime(2025, 6, 10, 6, 30, tzinfo=dt_timezone.utc),
        )
        return OrderService(
            orders, CartDjangoRepository(), ProductDjangoRepository(), config, sequencer=sequencer
        )

    def test_consecutive_orders_in_a_month(self, user, other_user, product, fill_cart, june_service, address):
        fill_cart(user, product)
        first = june_service.create_order(user, CheckoutDTO(shipping_address=address))
        fill_cart(other_user, product)
        second = june_service.create_order(other_user, CheckoutDTO(shipping_address=address))

        assert first.order_number == "MDD25060001"
        assert second.order_number == "MDD25060002"
