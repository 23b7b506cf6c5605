"""Product domain exceptions.

Raised by the Service Layer and the inventory ledger when business
rules are violated.  Each derives from the shared taxonomy so the API
layer renders it without per-view translation.
"""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError, ValidationError


class ProductAlreadyExists(ConflictError):
    """A product with the same slug (or a variant with the same SKU) exists."""

    code = "product_exists"


class ProductNotFound(NotFoundError):
    """The requested product does not exist or has been soft-deleted."""

    code = "product_not_found"
    default_message = "Product not found."


class VariantUnavailable(ValidationError):
    """The requested colour/size combination is not offered."""

    code = "variant_unavailable"


class InsufficientStockError(ConflictError):
    """Not enough stock on a variant to satisfy the requested quantity."""

    code = "insufficient_stock"
    default_message = "Insufficient stock for the requested quantity."


class InvalidUpload(ValidationError):
    """The uploaded file is missing, too large, or of a disallowed type."""

    code = "invalid_upload"
