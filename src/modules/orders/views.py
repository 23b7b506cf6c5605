"""Order API views.

Customer endpoints (checkout, own orders, cancel) and the admin order
surface (all orders, status changes).  Both delegate to
``OrderService``; domain exceptions propagate to the envelope exception
handler.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.carts.repositories import CartDjangoRepository
from modules.core.conf import CommerceConfig
from modules.core.permissions import IsAdmin
from modules.core.responses import envelope
from modules.core.validation import parse_dto
from modules.orders.dtos import CancelOrderDTO, CheckoutDTO, ListOrdersDTO, UpdateStatusDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.serializers import OrderListSerializer, OrderSerializer
from modules.orders.services import OrderService
from modules.products.repositories import ProductDjangoRepository


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        config=CommerceConfig.from_settings(),
    )


class OrderViewSet(GenericViewSet):
    """The authenticated customer's orders.

    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    permission_classes = [IsAuthenticated]
    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    ordering_fields = ["created_at", "total"]
    ordering = ["-created_at", "-id"]
    filter_backends = [OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "checkout" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Order.objects.none()
        query = parse_dto(ListOrdersDTO, self.request.query_params)
        return self._service.list_orders(self.request.user, status=query.status)

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/ (checkout from the cart)"""
        dto = parse_dto(CheckoutDTO, request.data)
        order = self._service.create_order(request.user, dto)
        return envelope(
            {"order": OrderSerializer(order).data},
            message="Order placed.",
            status=status.HTTP_201_CREATED,
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?status="""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(OrderListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(request.user, pk)
        return envelope({"order": OrderSerializer(order).data})

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels an order and restores any stock it had debited.
        """
        dto = parse_dto(CancelOrderDTO, request.data)
        order = self._service.cancel_order(request.user, pk, reason=dto.reason)
        return envelope({"order": OrderSerializer(order).data}, message="Order cancelled.")


class AdminOrderViewSet(GenericViewSet):
    """Every order, with filtering, search and the status workflow."""

    permission_classes = [IsAdmin]
    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "user__email"]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_queryset(self):
        return self._service.list_all_orders()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(OrderListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        order = self._service.get_order(request.user, pk)
        return envelope({"order": OrderSerializer(order).data})

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/ with ``status`` and optional tracking."""
        dto = parse_dto(UpdateStatusDTO, request.data)
        order = self._service.update_status(request.user, pk, dto)
        return envelope(
            {"order": OrderSerializer(order).data},
            message=f"Order status updated to {order.status}.",
        )
