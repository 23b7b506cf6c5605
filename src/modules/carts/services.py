"""Cart service layer.

Rules:
- Add: quantity within ``1..max_cart_quantity``; product active; colour
  and size offered; variant stock covers the merged quantity.
- Update: quantity within ``0..max_cart_quantity``; ``0`` removes the line.
- Concurrent edits from the same user are last-write-wins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import transaction

from modules.carts.exceptions import CartItemNotFound, CartQuantityError
from modules.carts.models import Cart, CartItem
from modules.products.exceptions import (
    InsufficientStockError,
    ProductNotFound,
    VariantUnavailable,
)

if TYPE_CHECKING:
    from modules.carts.dtos import AddCartItemDTO, CartItemKeyDTO, UpdateCartItemDTO
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.core.conf import CommerceConfig
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
        config: CommerceConfig,
    ) -> None:
        self._carts = cart_repository
        self._products = product_repository
        self._config = config

    def get_cart(self, user) -> Cart:
        return self._carts.get_or_create(user.id)

    @transaction.atomic
    def add_item(self, user, dto: AddCartItemDTO) -> Cart:
        ceiling = self._config.max_cart_quantity
        if not 1 <= dto.quantity <= ceiling:
            raise CartQuantityError(f"Quantity must be between 1 and {ceiling}.")

        product = self._get_sellable_product(dto)
        cart = self._carts.get_or_create(user.id)
        item = self._carts.get_item(cart, product.id, dto.color, dto.size)

        merged = dto.quantity + (item.quantity if item else 0)
        if merged > ceiling:
            raise CartQuantityError(
                f"At most {ceiling} units of one variant can be in the cart."
            )
        self._ensure_stock(product, dto.color, dto.size, merged)

        if item is None:
            item = CartItem(
                cart=cart,
                product=product,
                color=dto.color,
                size=dto.size,
                quantity=dto.quantity,
                price_at_add_time=product.price,
            )
        else:
            item.quantity = merged
        self._carts.save_item(item)

        logger.info(
            "cart.item_added",
            user_id=str(user.id),
            product_id=str(product.id),
            quantity=item.quantity,
        )
        return self._carts.get_for_user(user.id)

    @transaction.atomic
    def update_item(self, user, dto: UpdateCartItemDTO) -> Cart:
        ceiling = self._config.max_cart_quantity
        if not 0 <= dto.quantity <= ceiling:
            raise CartQuantityError(f"Quantity must be between 0 and {ceiling}.")

        cart = self._carts.get_or_create(user.id)
        item = self._get_item_or_raise(cart, dto)

        if dto.quantity == 0:
            self._carts.delete_item(item)
            logger.info("cart.item_removed", user_id=str(user.id), product_id=str(dto.product_id))
            return self._carts.get_for_user(user.id)

        product = self._products.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        self._ensure_stock(product, dto.color, dto.size, dto.quantity)

        item.quantity = dto.quantity
        self._carts.save_item(item)
        logger.info(
            "cart.item_updated",
            user_id=str(user.id),
            product_id=str(dto.product_id),
            quantity=dto.quantity,
        )
        return self._carts.get_for_user(user.id)

    @transaction.atomic
    def remove_item(self, user, dto: CartItemKeyDTO) -> Cart:
        cart = self._carts.get_or_create(user.id)
        item = self._get_item_or_raise(cart, dto)
        self._carts.delete_item(item)
        logger.info("cart.item_removed", user_id=str(user.id), product_id=str(dto.product_id))
        return self._carts.get_for_user(user.id)

    @transaction.atomic
    def clear(self, user) -> Cart:
        cart = self._carts.get_or_create(user.id)
        self._carts.clear(cart)
        return self._carts.get_for_user(user.id)

    # ------------------------------------------------------------------

    def _get_sellable_product(self, dto: CartItemKeyDTO) -> Product:
        product = self._products.get_by_id(str(dto.product_id))
        if not product or not product.is_active:
            raise ProductNotFound(f"Product {dto.product_id} not found.")
        if dto.color not in product.colors:
            raise VariantUnavailable(f"Color '{dto.color}' is not available for this product.")
        if dto.size not in product.sizes:
            raise VariantUnavailable(f"Size '{dto.size}' is not available for this product.")
        return product

    def _get_item_or_raise(self, cart: Cart, dto: CartItemKeyDTO) -> CartItem:
        item = self._carts.get_item(cart, dto.product_id, dto.color, dto.size)
        if item is None:
            raise CartItemNotFound()
        return item

    def _ensure_stock(self, product: Product, color: str, size: str, quantity: int) -> None:
        if not self._products.check_stock(str(product.id), color, size, quantity):
            raise InsufficientStockError("Insufficient stock for the requested quantity.")
