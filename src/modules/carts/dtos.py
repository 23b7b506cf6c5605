"""Cart request DTOs (Pydantic v2, immutable).

Range checks against the configured quantity ceiling happen in
``CartService``; the DTOs only enforce shape and sign.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class CartItemKeyDTO(BaseModel):
    """Identifies one cart line: product plus variant."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    color: str
    size: str

    @field_validator("color", "size")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank.")
        return v


class AddCartItemDTO(CartItemKeyDTO):
    quantity: int = 1


class UpdateCartItemDTO(CartItemKeyDTO):
    quantity: int
