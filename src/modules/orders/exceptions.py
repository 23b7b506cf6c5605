"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  Each
derives from the shared taxonomy so the API layer renders it through
the envelope exception handler.
"""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError, ValidationError


class OrderNotFound(NotFoundError):
    """The requested order does not exist."""

    code = "order_not_found"
    default_message = "Order not found."


class EmptyCartError(ValidationError):
    """Checkout was attempted with no items in the cart."""

    code = "empty_cart"
    default_message = "Cart is empty."


class InvalidOrderStatus(ConflictError):
    """The transition is not allowed from the order's current status."""

    code = "invalid_status_transition"
