"""Validated input for the catalogue service.

Views hand raw request data to ``parse_dto`` and the service only ever
sees these frozen pydantic models; text is trimmed and normalised here
so the service can compare values as-is.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class InventoryEntryDTO(BaseModel):
    """Immutable DTO for one ``(color, size)`` ledger entry."""

    model_config = ConfigDict(frozen=True)

    color: str
    size: str
    stock: int = 0
    sku: str

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock cannot be negative.")
        return v

    @field_validator("color", "size", "sku")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank.")
        return v


def _no_duplicate_variants(entries: List[InventoryEntryDTO]) -> List[InventoryEntryDTO]:
    keys = [(e.color, e.size) for e in entries]
    if len(keys) != len(set(keys)):
        raise ValueError("Each color/size combination may appear only once.")
    skus = [e.sku.upper() for e in entries]
    if len(skus) != len(set(skus)):
        raise ValueError("Variant SKUs must be unique.")
    return entries


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``price`` is a Decimal greater than zero.
    - ``compare_at_price``, when given, is not negative.
    - ``inventory`` has no duplicate variants or SKUs and only uses
      colours and sizes the product offers.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str
    description: str = ""
    category: str
    price: Decimal
    compare_at_price: Optional[Decimal] = None
    images: List[str] = []
    colors: List[str] = []
    sizes: List[str] = []
    tags: List[str] = []
    is_active: bool = True
    is_featured: bool = False
    inventory: List[InventoryEntryDTO] = []

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("compare_at_price")
    @classmethod
    def compare_at_must_be_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Compare-at price cannot be negative.")
        return v

    @field_validator("tags")
    @classmethod
    def normalise_tags(cls, v: List[str]) -> List[str]:
        return [tag.strip().lower() for tag in v if tag.strip()]

    @field_validator("inventory")
    @classmethod
    def inventory_unique(cls, v: List[InventoryEntryDTO]) -> List[InventoryEntryDTO]:
        return _no_duplicate_variants(v)

    @model_validator(mode="after")
    def inventory_matches_options(self):
        for entry in self.inventory:
            if entry.color not in self.colors or entry.size not in self.sizes:
                raise ValueError(
                    f"Inventory variant {entry.color}/{entry.size} is not among "
                    "the product's colors and sizes."
                )
        return self


class UpdateProductDTO(BaseModel):
    """Immutable DTO for partial product updates.

    All fields are optional; ``None`` means "leave unchanged".
    ``inventory``, when supplied, replaces the whole ledger.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    compare_at_price: Optional[Decimal] = None
    images: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    inventory: Optional[List[InventoryEntryDTO]] = None

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("inventory")
    @classmethod
    def inventory_unique(
        cls, v: Optional[List[InventoryEntryDTO]]
    ) -> Optional[List[InventoryEntryDTO]]:
        if v is None:
            return v
        return _no_duplicate_variants(v)


class StockCheckDTO(BaseModel):
    """Query for ``GET /products/{id}/check-stock/``."""

    model_config = ConfigDict(frozen=True)

    color: str
    size: str
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class ReplaceInventoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    inventory: List[InventoryEntryDTO]

    @field_validator("inventory")
    @classmethod
    def inventory_unique(cls, v: List[InventoryEntryDTO]) -> List[InventoryEntryDTO]:
        return _no_duplicate_variants(v)
