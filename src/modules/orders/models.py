"""Persistence for the order aggregate.

``Order`` is the root.  Its lines (``OrderItem``) are frozen copies of the
cart at checkout, its payment lives in a one-to-one ``OrderPayment`` that
only the payments module writes to, and every status move leaves an
``OrderStatusHistory`` row behind.

``order_number`` (``MDD<YY><MM><NNNN>``) is handed out by
``OrderNumberSequencer`` before the row is first inserted.
``stock_committed`` is set once confirmation has debited the inventory
ledger; cancellation only gives back stock when it is set.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    CANCELLABLE_STATES,
    CONFIRMABLE_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from shared.domain.events import EventRecorder

ZERO = Decimal("0.00")


def money(**extra) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, default=ZERO, **extra)


class Order(EventRecorder, BaseModel):
    """A placed order.

    API look-ups use the UUIDv7 ``id``; ``order_number`` is what the
    customer sees on receipts.  Addresses are JSON copies of the
    validated checkout input.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, models.PROTECT, related_name="orders")
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)

    subtotal = money()
    shipping_cost = money()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=ZERO)
    tax_amount = money()
    discount = money()
    total = money()

    shipping_address = models.JSONField()
    billing_address = models.JSONField()
    notes = models.TextField(blank=True, default="")

    tracking_number = models.CharField(max_length=100, blank=True, default="")
    carrier = models.CharField(max_length=100, blank=True, default="")
    stock_committed = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["user", "-created_at"], name="orders_by_user_idx"),
            models.Index(fields=["-created_at"], name="orders_recent_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_number} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_cancellable(self) -> bool:
        return self.status in CANCELLABLE_STATES

    @property
    def is_confirmable(self) -> bool:
        return self.status in CONFIRMABLE_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, ())

    @property
    def expected_total(self) -> Decimal:
        return self.subtotal + self.shipping_cost + self.tax_amount - self.discount

    def save(self, *args, **kwargs) -> None:
        if self.total != self.expected_total:
            raise ValueError(
                f"Order {self.order_number or '<new>'}: total {self.total} "
                f"!= subtotal + shipping + tax - discount ({self.expected_total})"
            )
        super().save(*args, **kwargs)


class OrderItem(BaseModel):
    """A cart line frozen at checkout.

    The name/image/sku/price columns are the record of what was bought;
    ``product`` is only a convenience link and is nulled if the product
    row goes away.
    """

    order = models.ForeignKey(Order, models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product", models.SET_NULL, null=True, related_name="order_items"
    )
    product_name = models.CharField(max_length=255)
    product_image = models.CharField(max_length=500, blank=True, default="")
    color = models.CharField(max_length=50)
    size = models.CharField(max_length=20)
    sku = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = money(editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="order_item_qty_gte_1"),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.sku}"

    def save(self, *args, **kwargs) -> None:
        self.subtotal = self.unit_price * self.quantity
        super().save(*args, **kwargs)


class OrderPayment(BaseModel):
    """How the order is being paid for.

    ``method`` starts as ``unset``.  Gateway ids are only filled for
    ``razorpay``; a ``cod`` payment stays ``pending`` until delivery.
    """

    order = models.OneToOneField(Order, models.CASCADE, related_name="payment")
    method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.UNSET)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    gateway_order_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    gateway_payment_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    failure_reason = models.CharField(max_length=255, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_payments"
        indexes = [models.Index(fields=["status"], name="order_payment_status_idx")]

    def __str__(self) -> str:
        return f"{self.method}/{self.status}"

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED


class OrderStatusHistory(BaseModel):
    # user is None for system actors (gateway webhooks).
    order = models.ForeignKey(Order, models.CASCADE, related_name="status_history")
    old_status = models.CharField(max_length=20, choices=OrderStatus.choices, null=True, blank=True)
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, models.SET_NULL, null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        verbose_name_plural = "order status history"
        indexes = [models.Index(fields=["order", "-created_at"], name="order_history_idx")]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status or '-'} -> {self.new_status}"
