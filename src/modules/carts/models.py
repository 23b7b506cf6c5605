"""Per-user shopping cart.

- One ``Cart`` per user (one-to-one).
- At most one ``CartItem`` per ``(cart, product, color, size)``; a
  duplicate add merges quantities.
- ``item_count`` and ``subtotal`` are derived, never stored.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class Cart(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="cart",
    )

    class Meta:
        db_table = "carts"

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items.all())

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items.all()), Decimal("0.00"))

    @property
    def is_empty(self) -> bool:
        return not any(True for _ in self.items.all())

    def __str__(self) -> str:
        return f"Cart({self.user_id})"


class CartItem(BaseModel):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="+",
    )
    color = models.CharField(max_length=50)
    size = models.CharField(max_length=20)
    quantity = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    price_at_add_time = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "product", "color", "size"],
                name="cart_item_unique_variant",
            ),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.price_at_add_time * self.quantity

    def __str__(self) -> str:
        return f"{self.product_id} {self.color}/{self.size} x{self.quantity}"
