"""Product DRF serializers for API output.

The serializer operates at the Interface layer (API Views).
Writes go through the Service Layer, which receives Pydantic DTOs
from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import InventoryRecord, Product


class InventoryRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryRecord
        fields = ["color", "size", "stock", "sku"]


class ProductSerializer(serializers.ModelSerializer):
    """Full product representation, including the inventory ledger."""

    inventory = InventoryRecordSerializer(many=True, read_only=True)
    discount_percentage = serializers.IntegerField(read_only=True)
    primary_image = serializers.CharField(read_only=True)
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "slug",
            "name",
            "description",
            "category",
            "price",
            "compare_at_price",
            "discount_percentage",
            "images",
            "primary_image",
            "colors",
            "sizes",
            "tags",
            "is_active",
            "is_featured",
            "in_stock",
            "inventory",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_in_stock(self, obj: Product) -> bool:
        return any(record.stock > 0 for record in obj.inventory.all())


class ProductListSerializer(ProductSerializer):
    """Catalogue card: the ledger is summarised, not listed."""

    class Meta(ProductSerializer.Meta):
        fields = [
            "id",
            "slug",
            "name",
            "category",
            "price",
            "compare_at_price",
            "discount_percentage",
            "primary_image",
            "colors",
            "sizes",
            "is_featured",
            "in_stock",
        ]
        read_only_fields = fields


class ImageUploadSerializer(serializers.Serializer):
    image = serializers.FileField()


class ImageDeleteSerializer(serializers.Serializer):
    url = serializers.CharField()
