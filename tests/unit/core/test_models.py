"""Unit tests for the shared model layer.

Covers:
- UUIDv7 primary keys and update_fields touching updated_at
- Soft delete on products (instance and queryset), alive()
- OutboxEvent persistence
- Order total must match its breakdown; OrderItem computes its subtotal
- Product slug/sku normalisation and discount_percentage
"""

from decimal import Decimal

import pytest

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem
from modules.products.models import InventoryRecord, Product

pytestmark = pytest.mark.unit


def _order(user, **overrides):
    fields = {
        "order_number": "MDD25060001",
        "user": user,
        "subtotal": Decimal("1798.00"),
        "shipping_cost": Decimal("100.00"),
        "tax_amount": Decimal("324.00"),
        "total": Decimal("2222.00"),
        "shipping_address": {"city": "Bengaluru"},
        "billing_address": {"city": "Bengaluru"},
    }
    fields.update(overrides)
    return Order(**fields)


class TestBaseModel:
    def test_ids_are_uuid7(self, product):
        assert product.id.version == 7

    def test_update_fields_refreshes_updated_at(self, product):
        before = product.updated_at

        product.name = "Renamed"
        product.save(update_fields=["name"])
        product.refresh_from_db()

        assert product.updated_at > before


class TestSoftDelete:
    def test_instance_delete_hides_row(self, product):
        assert product.delete() == (1, {"products.Product": 1})

        assert Product.objects.filter(pk=product.pk).exists()
        assert not Product.objects.alive().filter(pk=product.pk).exists()
        assert Product.objects.get(pk=product.pk).is_deleted

    def test_deleting_twice_is_a_no_op(self, product):
        product.delete()
        assert product.delete() == (0, {})

    def test_queryset_delete_is_soft(self, make_product):
        make_product()
        make_product()

        count, _ = Product.objects.all().delete()

        assert count == 2
        assert Product.objects.count() == 2
        assert Product.objects.alive().count() == 0

    def test_inventory_survives_soft_delete(self, product):
        product.delete()
        assert InventoryRecord.objects.filter(product=product).count() == 4


class TestOutboxEvent:
    def test_persists_payload(self):
        event = OutboxEvent.objects.create(
            event_type="OrderCreated",
            aggregate_id="0190a1b2-c3d4-7e5f-8a6b-7c8d9e0f1a2b",
            topic="orders",
            payload={"order_number": "MDD25060001", "total": "2222.00"},
        )
        event.refresh_from_db()

        assert event.payload["total"] == "2222.00"
        assert event.published_at is None
        assert str(event) == "orders:OrderCreated (0190a1b2-c3d4-7e5f-8a6b-7c8d9e0f1a2b)"


class TestOrderModel:
    def test_total_must_match_breakdown(self, user):
        with pytest.raises(ValueError, match="2222.00"):
            _order(user, total=Decimal("2000.00")).save()

    def test_consistent_order_saves(self, user):
        order = _order(user)
        order.save()
        assert Order.objects.get(pk=order.pk).status == "pending"

    def test_item_subtotal_is_computed(self, user, product):
        order = _order(user)
        order.save()

        item = OrderItem.objects.create(
            order=order,
            product=product,
            product_name=product.name,
            color="Rainbow",
            size="M",
            sku="TEE1-RAINBOW-M",
            quantity=3,
            unit_price=Decimal("899.00"),
        )

        assert item.subtotal == Decimal("2697.00")

    def test_transition_table(self, user):
        order = _order(user)
        assert order.can_transition_to("confirmed")
        assert not order.can_transition_to("delivered")


class TestProductModel:
    def test_slug_and_sku_are_normalised(self, make_product):
        product = make_product(slug="  Summer-TEE ")
        record = InventoryRecord.objects.create(product=product, color="Red", size="S", sku=" tee-red-s ")

        assert product.slug == "summer-tee"
        assert record.sku == "TEE-RED-S"

    @pytest.mark.parametrize(
        ("price", "compare_at", "expected"),
        [("899.00", "1199.00", 25), ("899.00", None, 0), ("899.00", "899.00", 0), ("500.00", "999.00", 50)],
    )
    def test_discount_percentage(self, price, compare_at, expected):
        product = Product(
            price=Decimal(price),
            compare_at_price=Decimal(compare_at) if compare_at else None,
        )
        assert product.discount_percentage == expected

    def test_variant_lookup(self, product):
        assert product.variant("Rainbow", "M").stock == 10
        assert product.variant("Rainbow", "XXL") is None
        assert product.check_stock("Blue", "L", 10)
        assert not product.check_stock("Blue", "L", 11)
