"""Cart repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modules.carts.models import Cart, CartItem


class ICartRepository(ABC):
    """Repository contract for the Cart aggregate (cart + items)."""

    @abstractmethod
    def get_or_create(self, user_id) -> Cart:
        """Return the user's cart, creating an empty one if needed."""

    @abstractmethod
    def get_for_user(self, user_id) -> Optional[Cart]:
        """Return the user's cart with items and products loaded."""

    @abstractmethod
    def get_item(self, cart: Cart, product_id, color: str, size: str) -> Optional[CartItem]:
        """Return the line for one variant, if present."""

    @abstractmethod
    def save_item(self, item: CartItem) -> CartItem:
        """Persist (create or update) a line item."""

    @abstractmethod
    def delete_item(self, item: CartItem) -> None:
        """Remove a line item."""

    @abstractmethod
    def clear(self, cart: Cart) -> int:
        """Remove every line item; returns how many were removed."""
