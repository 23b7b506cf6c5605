"""Product API views.

Public catalogue endpoints and the admin product management surface.
Both delegate to ``ProductService``; domain exceptions propagate to
the envelope exception handler instead of being translated here.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsAdmin
from modules.core.responses import envelope
from modules.core.validation import parse_dto
from modules.products.dtos import (
    CreateProductDTO,
    ReplaceInventoryDTO,
    StockCheckDTO,
    UpdateProductDTO,
)
from modules.products.exceptions import InvalidUpload
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import (
    ImageDeleteSerializer,
    ProductListSerializer,
    ProductSerializer,
)
from modules.products.services import ProductService


def _product_service() -> ProductService:
    return ProductService(repository=ProductDjangoRepository())


class ProductViewSet(GenericViewSet):
    """Public catalogue: active products only, retrieved by slug."""

    permission_classes = [AllowAny]
    filterset_class = ProductFilter
    ordering_fields = ["price", "created_at", "name"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    queryset = Product.objects.none()
    serializer_class = ProductListSerializer
    lookup_field = "slug"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _product_service()

    def get_queryset(self):
        return self._service.list_active_products()

    def list(self, request: Request) -> Response:
        """GET /api/v1/products/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = ProductListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, slug: str | None = None) -> Response:
        """GET /api/v1/products/{slug}/"""
        product = self._service.get_by_slug(slug or "")
        return envelope(ProductSerializer(product).data)


class CheckStockView(APIView):
    """GET /api/v1/products/{id}/check-stock/?color=&size=&quantity="""

    permission_classes = [AllowAny]

    def get(self, request: Request, product_id) -> Response:
        query = parse_dto(StockCheckDTO, request.query_params)
        result = _product_service().check_stock(
            str(product_id), query.color, query.size, query.quantity
        )
        return envelope(result)


class AdminProductViewSet(GenericViewSet):
    """Admin product management: CRUD, inventory ledger and images.

    Lists include inactive products; soft-deleted ones are hidden.
    """

    permission_classes = [IsAdmin]
    filterset_class = ProductFilter
    ordering_fields = ["price", "created_at", "name"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    queryset = Product.objects.none()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _product_service()

    def get_queryset(self):
        return self._service.list_products()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/products/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(ProductSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        product = self._service.get_product(pk)
        return envelope(ProductSerializer(product).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/admin/products/"""
        dto = parse_dto(CreateProductDTO, request.data)
        product = self._service.create_product(dto)
        return envelope(
            ProductSerializer(product).data,
            message="Product created.",
            status=status.HTTP_201_CREATED,
        )

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/admin/products/{pk}/"""
        dto = parse_dto(UpdateProductDTO, request.data)
        product = self._service.update_product(pk, dto)
        return envelope(ProductSerializer(product).data, message="Product updated.")

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        self._service.delete_product(pk)
        return envelope(message="Product deleted.")

    @action(detail=True, methods=["put"], url_path="inventory")
    def inventory(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/admin/products/{pk}/inventory/"""
        dto = parse_dto(ReplaceInventoryDTO, request.data)
        product = self._service.replace_inventory(pk, dto.inventory)
        return envelope(ProductSerializer(product).data, message="Inventory updated.")

    @action(detail=True, methods=["post", "delete"], url_path="images")
    def images(self, request: Request, pk: str | None = None) -> Response:
        """POST (multipart ``image``) or DELETE (``{"url": ...}``) a product image."""
        if request.method == "DELETE":
            serializer = ImageDeleteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            product = self._service.remove_image(pk, serializer.validated_data["url"])
            return envelope(ProductSerializer(product).data, message="Image removed.")

        upload = request.FILES.get("image")
        if upload is None:
            raise InvalidUpload("No image file provided.")
        product = self._service.add_image(
            pk, upload.read(), upload.name, upload.content_type or ""
        )
        return envelope(
            ProductSerializer(product).data,
            message="Image uploaded.",
            status=status.HTTP_201_CREATED,
        )
