"""Response shapes for orders.

Request bodies go through the pydantic DTOs in ``dtos.py``; nothing here
is writable.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem, OrderPayment, OrderStatusHistory

PRICING = ("subtotal", "shipping_cost", "tax_rate", "tax_amount", "discount", "total")


class ReadOnlyModelSerializer(serializers.ModelSerializer):
    def get_fields(self):
        fields = super().get_fields()
        for field in fields.values():
            field.read_only = True
        return fields


class OrderItemSerializer(ReadOnlyModelSerializer):
    class Meta:
        model = OrderItem
        fields = (
            "id", "product_id", "product_name", "product_image",
            "sku", "color", "size", "unit_price", "quantity", "subtotal",
        )


class OrderPaymentSerializer(ReadOnlyModelSerializer):
    class Meta:
        model = OrderPayment
        fields = ("method", "status", "gateway_order_id", "gateway_payment_id", "paid_at", "failure_reason")


class StatusHistorySerializer(ReadOnlyModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ("id", "old_status", "new_status", "notes", "created_at")


class OrderSerializer(ReadOnlyModelSerializer):
    """Order detail: lines, payment and status trail included."""

    items = OrderItemSerializer(many=True)
    payment = OrderPaymentSerializer()
    status_history = StatusHistorySerializer(many=True)

    class Meta:
        model = Order
        fields = (
            "id", "order_number", "user_id", "status",
            *PRICING,
            "shipping_address", "billing_address", "notes",
            "tracking_number", "carrier", "delivered_at", "cancelled_at",
            "created_at", "updated_at",
            "items", "payment", "status_history",
        )


class OrderListSerializer(ReadOnlyModelSerializer):
    customer_email = serializers.EmailField(source="user.email")
    payment_status = serializers.CharField(source="payment.status")
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = ("id", "order_number", "customer_email", "status", "payment_status", "total", "item_count", "created_at")

    def get_item_count(self, order: Order) -> int:
        # Units, not lines; uses the prefetched items.
        return sum(line.quantity for line in order.items.all())
