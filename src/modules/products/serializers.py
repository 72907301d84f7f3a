"""Product DRF serializers (read-only catalog)."""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "price",
            "weight",
            "gold_purity",
            "stock_quantity",
            "in_stock",
            "featured",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_in_stock(self, obj: Product) -> bool:
        return obj.stock_quantity > 0
