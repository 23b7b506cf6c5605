"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.carts.models import Cart, CartItem
from modules.carts.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    def get_or_create(self, user_id) -> Cart:
        cart, created = Cart.objects.get_or_create(user_id=user_id)
        if created:
            logger.info("cart.created", user_id=str(user_id), cart_id=str(cart.id))
        return self.get_for_user(user_id) or cart

    def get_for_user(self, user_id) -> Optional[Cart]:
        """Eager-loads items, their products and the products' ledgers."""
        return (
            Cart.objects.prefetch_related("items__product__inventory")
            .filter(user_id=user_id)
            .first()
        )

    def get_item(self, cart: Cart, product_id, color: str, size: str) -> Optional[CartItem]:
        try:
            return CartItem.objects.filter(
                cart=cart, product_id=product_id, color=color, size=size
            ).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save_item(self, item: CartItem) -> CartItem:
        item.save()
        return item

    @transaction.atomic
    def delete_item(self, item: CartItem) -> None:
        item.delete()

    @transaction.atomic
    def clear(self, cart: Cart) -> int:
        count, _ = CartItem.objects.filter(cart=cart).delete()
        logger.info("cart.cleared", cart_id=str(cart.id), removed=count)
        return count
