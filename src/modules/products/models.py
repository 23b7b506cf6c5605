"""Catalogue entries and their per-variant stock.

A ``Product`` carries what the storefront displays: prices, images,
colours and sizes.  How many units exist is kept per ``(color, size)`` in
``InventoryRecord`` rows, the inventory ledger, each with its own SKU.
Products are never removed, only soft-deleted, so order lines and
analytics keep resolving.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel

PLACEHOLDER_IMAGE = "/placeholder.svg"


class Product(SoftDeleteModel):
    """One catalogue entry.

    ``colors``/``sizes``/``images``/``tags`` are JSON lists of plain
    strings.  ``slug`` is stored lower-cased.
    """

    slug = models.SlugField(max_length=255, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=100, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    compare_at_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    colors = models.JSONField(default=list, blank=True)
    sizes = models.JSONField(default=list, blank=True)
    images = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)
    is_featured = models.BooleanField(default=False, db_index=True)

    class Meta:
        db_table = "products"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "category"], name="product_listing_idx"),
            models.Index(fields=["is_active", "is_featured"], name="product_featured_idx"),
            models.Index(fields=["is_active", "price"], name="product_price_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gt=0), name="product_price_gt_0"),
        ]

    def __str__(self) -> str:
        return self.name

    def save(self, *args, **kwargs) -> None:
        self.slug = (self.slug or "").strip().lower()
        super().save(*args, **kwargs)

    @property
    def discount_percentage(self) -> int:
        """Whole-percent saving against ``compare_at_price``, 0 when none."""
        was = self.compare_at_price
        if not was or was <= self.price:
            return 0
        saving = (was - self.price) * 100 / was
        return int(saving.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def primary_image(self) -> str:
        return self.images[0] if self.images else PLACEHOLDER_IMAGE

    def offers(self, color: str, size: str) -> bool:
        return color in self.colors and size in self.sizes

    def variant(self, color: str, size: str) -> Optional[InventoryRecord]:
        # Iterates so a prefetched ``inventory`` is reused.
        return next(
            (record for record in self.inventory.all() if (record.color, record.size) == (color, size)),
            None,
        )

    def check_stock(self, color: str, size: str, quantity: int) -> bool:
        record = self.variant(color, size)
        return bool(record) and record.stock >= quantity

    def fallback_sku(self, color: str, size: str) -> str:
        return "-".join((self.slug, color, size)).upper().replace(" ", "-")


class InventoryRecord(BaseModel):
    """Units on hand for one colour/size of a product.

    Only the product repository changes ``stock``, under a row lock.
    """

    product = models.ForeignKey(Product, models.CASCADE, related_name="inventory")
    color = models.CharField(max_length=50)
    size = models.CharField(max_length=20)
    sku = models.CharField(max_length=100, unique=True)
    stock = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "inventory_records"
        ordering = ["color", "size"]
        constraints = [
            models.UniqueConstraint(fields=["product", "color", "size"], name="one_record_per_variant"),
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="inventory_stock_gte_0"),
        ]

    def __str__(self) -> str:
        return f"{self.sku}: {self.stock}"

    def save(self, *args, **kwargs) -> None:
        self.sku = (self.sku or "").strip().upper()
        super().save(*args, **kwargs)
