"""Product URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.products.views import (
    AdminProductViewSet,
    CheckStockView,
    ProductViewSet,
)

router = DefaultRouter(trailing_slash=True)
router.register("products", ProductViewSet, basename="product")
router.register("admin/products", AdminProductViewSet, basename="admin-product")

urlpatterns = [
    path(
        "products/<uuid:product_id>/check-stock/",
        CheckStockView.as_view(),
        name="product-check-stock",
    ),
    *router.urls,
]
