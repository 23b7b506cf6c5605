"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Look-ups follow the Null Object pattern: they return ``None``
instead of raising, the Service Layer decides how to translate a
missing entity.  Ledger writes lock the variant row with
``select_for_update()`` and re-validate before touching stock.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet

from modules.products.dtos import InventoryEntryDTO
from modules.products.exceptions import InsufficientStockError
from modules.products.models import InventoryRecord, Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.alive().prefetch_related("inventory").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_slug(self, slug: str, active_only: bool = False) -> Optional[Product]:
        queryset = Product.objects.alive().prefetch_related("inventory").filter(
            slug=slug.strip().lower()
        )
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"category__iexact": "shirts"}
        """
        queryset = Product.objects.alive().prefetch_related("inventory")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), slug=entity.slug)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a product by ID.

        Returns ``True`` if the product was found and soft-deleted,
        ``False`` if no product exists with the given ID.
        """
        product = self.get_by_id(id)
        if not product:
            return False
        product.delete()
        logger.info("product.soft_deleted", product_id=str(id))
        return True

    @transaction.atomic
    def replace_inventory(
        self, product: Product, entries: Iterable[InventoryEntryDTO]
    ) -> List[InventoryRecord]:
        InventoryRecord.objects.filter(product=product).delete()
        records = [
            InventoryRecord.objects.create(
                product=product,
                color=entry.color,
                size=entry.size,
                stock=entry.stock,
                sku=entry.sku,
            )
            for entry in entries
        ]
        logger.info(
            "product.inventory_replaced",
            product_id=str(product.id),
            variant_count=len(records),
        )
        return records

    # ------------------------------------------------------------------
    # Inventory ledger
    # ------------------------------------------------------------------

    def get_variant(self, product_id: str, color: str, size: str) -> Optional[InventoryRecord]:
        try:
            return InventoryRecord.objects.filter(
                product_id=product_id, color=color, size=size
            ).first()
        except (ValueError, ValidationError):
            return None

    def check_stock(self, product_id: str, color: str, size: str, quantity: int) -> bool:
        record = self.get_variant(product_id, color, size)
        return record is not None and record.stock >= quantity

    @transaction.atomic
    def debit(self, product_id: str, color: str, size: str, quantity: int) -> InventoryRecord:
        record = (
            InventoryRecord.objects.select_for_update()
            .filter(product_id=product_id, color=color, size=size)
            .first()
        )
        if record is None or record.stock < quantity:
            available = record.stock if record else 0
            logger.warning(
                "inventory.insufficient_stock",
                product_id=str(product_id),
                color=color,
                size=size,
                requested=quantity,
                available=available,
            )
            raise InsufficientStockError(
                f"Insufficient stock for {color}/{size}: "
                f"requested {quantity}, available {available}.",
                details=[
                    {
                        "product_id": str(product_id),
                        "color": color,
                        "size": size,
                        "requested": quantity,
                        "available": available,
                    }
                ],
            )

        InventoryRecord.objects.filter(pk=record.pk).update(stock=F("stock") - quantity)
        record.refresh_from_db(fields=["stock"])
        logger.info(
            "inventory.debited",
            product_id=str(product_id),
            sku=record.sku,
            quantity=quantity,
            remaining=record.stock,
        )
        return record

    @transaction.atomic
    def credit(self, product_id: str, color: str, size: str, quantity: int) -> Optional[InventoryRecord]:
        record = (
            InventoryRecord.objects.select_for_update()
            .filter(product_id=product_id, color=color, size=size)
            .first()
        )
        if record is None:
            logger.warning(
                "inventory.credit_skipped",
                product_id=str(product_id),
                color=color,
                size=size,
                quantity=quantity,
            )
            return None

        InventoryRecord.objects.filter(pk=record.pk).update(stock=F("stock") + quantity)
        record.refresh_from_db(fields=["stock"])
        logger.info(
            "inventory.credited",
            product_id=str(product_id),
            sku=record.sku,
            quantity=quantity,
            remaining=record.stock,
        )
        return record

    def find_taken_skus(self, skus: Iterable[str], exclude_product_id: Optional[str] = None) -> List[str]:
        normalised = [sku.strip().upper() for sku in skus]
        queryset = InventoryRecord.objects.filter(sku__in=normalised)
        if exclude_product_id is not None:
            queryset = queryset.exclude(product_id=exclude_product_id)
        return list(queryset.values_list("sku", flat=True))

    def slug_exists(self, slug: str) -> bool:
        # Soft-deleted rows still hold their slug.
        return Product.objects.filter(slug=slug.strip().lower()).exists()
