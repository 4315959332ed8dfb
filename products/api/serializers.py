"""Products API serializers.

Read-only representations for the storefront: a compact list form and a full
detail form including per-colour stock.
"""

from rest_framework import serializers

from ..models import Product


class ProductColorSerializer(serializers.Serializer):
    colorName = serializers.CharField()
    colorHex = serializers.CharField(allow_blank=True)
    stock = serializers.IntegerField(min_value=0)


class ProductListSerializer(serializers.ModelSerializer):
    """List serializer with the first image as thumbnail."""

    image = serializers.SerializerMethodField()
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "category",
            "product_type",
            "image",
            "is_hot_deal",
            "original_price",
            "discount_percent",
            "selling_price",
            "delivery_fee",
            "total_stock",
            "in_stock",
            "updated_at",
        ]

    def get_image(self, obj):
        images = obj.images or []
        return images[0] if images else ""

    def get_in_stock(self, obj):
        return obj.total_stock > 0


class ProductDetailSerializer(serializers.ModelSerializer):
    """Full storefront representation of a single product."""

    colors = ProductColorSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "description",
            "category",
            "product_type",
            "images",
            "is_hot_deal",
            "price_mode",
            "original_price",
            "discount_percent",
            "selling_price",
            "delivery_fee",
            "colors",
            "total_stock",
            "created_at",
            "updated_at",
        ]
