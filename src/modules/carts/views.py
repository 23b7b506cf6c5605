"""Cart API views (authenticated user's own cart only)."""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.carts.dtos import AddCartItemDTO, CartItemKeyDTO, UpdateCartItemDTO
from modules.carts.repositories import CartDjangoRepository
from modules.carts.serializers import CartSerializer
from modules.carts.services import CartService
from modules.core.conf import CommerceConfig
from modules.core.responses import envelope
from modules.core.validation import parse_dto
from modules.products.repositories import ProductDjangoRepository


class CartViewSet(ViewSet):
    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            config=CommerceConfig.from_settings(),
        )

    @staticmethod
    def _render(cart, message=None) -> Response:
        return envelope({"cart": CartSerializer(cart).data}, message=message)

    def list(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        return self._render(self._service.get_cart(request.user))

    @action(detail=False, methods=["post"], url_path="add")
    def add(self, request: Request) -> Response:
        """POST /api/v1/cart/add/"""
        dto = parse_dto(AddCartItemDTO, request.data)
        cart = self._service.add_item(request.user, dto)
        return self._render(cart, message="Item added to cart.")

    @action(detail=False, methods=["put", "patch"], url_path="update")
    def update_item(self, request: Request) -> Response:
        """PUT /api/v1/cart/update/"""
        dto = parse_dto(UpdateCartItemDTO, request.data)
        cart = self._service.update_item(request.user, dto)
        return self._render(cart, message="Cart updated.")

    @action(detail=False, methods=["delete"], url_path="remove")
    def remove(self, request: Request) -> Response:
        """DELETE /api/v1/cart/remove/"""
        dto = parse_dto(CartItemKeyDTO, request.data)
        cart = self._service.remove_item(request.user, dto)
        return self._render(cart, message="Item removed from cart.")

    @action(detail=False, methods=["delete"], url_path="clear")
    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/clear/"""
        cart = self._service.clear(request.user)
        return self._render(cart, message="Cart cleared.")
