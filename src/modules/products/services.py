"""Product service layer (Use Cases).

Orchestrates business logic for the Product aggregate and its
inventory ledger, delegating persistence to the injected
``IProductRepository`` and image files to an ``ObjectStorage``.

Business rules enforced here:
- Slug must be unique (soft-deleted products keep theirs).
- Variant SKUs are unique across the whole catalogue.
- Inventory variants must use colours and sizes the product offers.
- Public look-ups only see active, non-deleted products.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.products.exceptions import (
    ProductAlreadyExists,
    ProductNotFound,
    VariantUnavailable,
)
from modules.products.models import Product
from modules.products.storage import get_storage, validate_image

if TYPE_CHECKING:
    from modules.products.dtos import (
        CreateProductDTO,
        InventoryEntryDTO,
        UpdateProductDTO,
    )
    from modules.products.repositories.interfaces import IProductRepository
    from modules.products.storage import ObjectStorage

logger = structlog.get_logger(__name__)

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "category",
    "price",
    "compare_at_price",
    "images",
    "colors",
    "sizes",
    "tags",
    "is_active",
    "is_featured",
)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(
        self,
        repository: IProductRepository,
        storage: Optional[ObjectStorage] = None,
    ) -> None:
        self._repo = repository
        self._storage = storage

    @property
    def storage(self) -> ObjectStorage:
        return self._storage or get_storage()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a product together with its inventory ledger.

        Raises:
            ProductAlreadyExists: slug or a variant SKU already taken.
        """
        log = logger.bind(slug=dto.slug)

        if self._repo.slug_exists(dto.slug):
            log.warning("product.duplicate_slug")
            raise ProductAlreadyExists(f"Slug '{dto.slug}' already registered.")
        self._ensure_skus_free(dto.inventory)

        product = Product(
            slug=dto.slug,
            name=dto.name,
            description=dto.description,
            category=dto.category,
            price=dto.price,
            compare_at_price=dto.compare_at_price,
            images=list(dto.images),
            colors=list(dto.colors),
            sizes=list(dto.sizes),
            tags=list(dto.tags),
            is_active=dto.is_active,
            is_featured=dto.is_featured,
        )
        product = self._repo.save(product)
        self._repo.replace_inventory(product, dto.inventory)
        log.info("product.created", product_id=str(product.id))
        return self._reload(product)

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Apply the supplied fields; ``inventory`` replaces the ledger.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._get_or_raise(id)
        log = logger.bind(product_id=str(id))

        for field in _UPDATABLE_FIELDS:
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, list(value) if isinstance(value, list) else value)

        product = self._repo.save(product)
        if dto.inventory is not None:
            self._replace_inventory(product, dto.inventory)
        log.info("product.updated")
        return self._reload(product)

    @transaction.atomic
    def replace_inventory(self, id: str, entries: Iterable[InventoryEntryDTO]) -> Product:
        product = self._get_or_raise(id)
        self._replace_inventory(product, list(entries))
        return self._reload(product)

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        """Soft-delete a product.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        self._get_or_raise(id)
        self._repo.delete(id)
        logger.info("product.deleted", product_id=str(id))

    def add_image(self, id: str, data: bytes, name: str, content_type: str) -> Product:
        """Upload an image to object storage and append its URL."""
        product = self._get_or_raise(id)
        validate_image(name, content_type, len(data), settings.MAX_UPLOAD_BYTES)
        url = self.storage.upload(data, name, content_type, folder="products")
        product.images = [*product.images, url]
        self._repo.save(product)
        logger.info("product.image_added", product_id=str(id), url=url)
        return product

    def remove_image(self, id: str, url: str) -> Product:
        product = self._get_or_raise(id)
        if url not in product.images:
            raise ProductNotFound("Image is not attached to this product.")
        self.storage.delete(url)
        product.images = [image for image in product.images if image != url]
        self._repo.save(product)
        logger.info("product.image_removed", product_id=str(id), url=url)
        return product

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None):
        """Return products, optionally filtered."""
        return self._repo.list(filters)

    def list_active_products(self):
        return self._repo.list({"is_active": True})

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        return self._get_or_raise(id)

    def get_by_slug(self, slug: str) -> Product:
        product = self._repo.get_by_slug(slug, active_only=True)
        if not product:
            raise ProductNotFound(f"Product '{slug}' not found.")
        return product

    def check_stock(self, id: str, color: str, size: str, quantity: int) -> Dict[str, Any]:
        """Report whether a variant can cover ``quantity`` units.

        Raises:
            ProductNotFound: unknown or inactive product.
            VariantUnavailable: colour/size not offered by the product.
        """
        product = self._get_or_raise(id)
        if not product.is_active:
            raise ProductNotFound(f"Product {id} not found.")
        if not product.offers(color, size):
            raise VariantUnavailable(f"{color}/{size} is not available for this product.")
        record = product.variant(color, size)
        stock = record.stock if record else 0
        return {
            "product_id": str(product.id),
            "color": color,
            "size": size,
            "requested": quantity,
            "stock": stock,
            "available": stock >= quantity,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_or_raise(self, id: str) -> Product:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def _reload(self, product: Product) -> Product:
        return self._repo.get_by_id(str(product.id)) or product

    def _ensure_skus_free(self, entries, exclude_product_id: Optional[str] = None) -> None:
        taken = self._repo.find_taken_skus(
            [entry.sku for entry in entries], exclude_product_id=exclude_product_id
        )
        if taken:
            raise ProductAlreadyExists(
                "Variant SKU already registered.",
                details=[{"attr": "inventory.sku", "detail": sku} for sku in taken],
            )

    def _replace_inventory(self, product: Product, entries) -> None:
        for entry in entries:
            if not product.offers(entry.color, entry.size):
                raise VariantUnavailable(
                    f"Inventory variant {entry.color}/{entry.size} is not among "
                    "the product's colors and sizes."
                )
        self._ensure_skus_free(entries, exclude_product_id=str(product.id))
        self._repo.replace_inventory(product, entries)
