"""Cart domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFoundError, ValidationError


class CartItemNotFound(NotFoundError):
    code = "cart_item_not_found"
    default_message = "Item not found in cart."


class CartQuantityError(ValidationError):
    """Requested quantity is outside the allowed range."""

    code = "invalid_quantity"
