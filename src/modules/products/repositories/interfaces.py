"""Product repository interface.

Extends ``IRepository[Product]`` with slug look-ups and the inventory
ledger operations (check, debit, credit) used by the cart, order and
payment workflows.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.dtos import InventoryEntryDTO
    from modules.products.models import InventoryRecord, Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products with optional filters."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete a product; ``False`` when it does not exist."""

    @abstractmethod
    def get_by_slug(self, slug: str, active_only: bool = False) -> Optional[Product]:
        """Retrieve a product by slug."""

    @abstractmethod
    def replace_inventory(
        self, product: Product, entries: Iterable[InventoryEntryDTO]
    ) -> List[InventoryRecord]:
        """Replace the whole inventory ledger of ``product``."""

    # ------------------------------------------------------------------
    # Inventory ledger
    # ------------------------------------------------------------------

    @abstractmethod
    def check_stock(self, product_id: str, color: str, size: str, quantity: int) -> bool:
        """``True`` when the variant exists and holds at least ``quantity``."""

    @abstractmethod
    def get_variant(self, product_id: str, color: str, size: str) -> Optional[InventoryRecord]:
        """Retrieve the ledger record for one variant."""

    @abstractmethod
    def debit(self, product_id: str, color: str, size: str, quantity: int) -> InventoryRecord:
        """Lock the variant, re-check availability and subtract ``quantity``.

        Raises ``InsufficientStockError`` when the variant is missing or
        short; nothing is written in that case.
        """

    @abstractmethod
    def credit(self, product_id: str, color: str, size: str, quantity: int) -> Optional[InventoryRecord]:
        """Lock the variant and add ``quantity`` back.

        Returns ``None`` when the variant no longer exists.
        """

    @abstractmethod
    def find_taken_skus(self, skus: Iterable[str], exclude_product_id: Optional[str] = None) -> List[str]:
        """Return the SKUs already used by other products' variants."""

    @abstractmethod
    def slug_exists(self, slug: str) -> bool:
        """``True`` when any product, deleted or not, already uses ``slug``."""
