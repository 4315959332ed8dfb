from django.contrib import admin
from django.utils.html import format_html

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Produktverwaltung:
    - Liste: Name, Kategorie, Preis, Lagerbestand (Badge), Sichtbarkeit
    - Filter: Kategorie, Sichtbar, Geloescht, Hot Deal
    - total_stock ist abgeleitet und daher readonly
    """
    list_display = (
        "name",
        "category",
        "selling_price",
        "delivery_fee",
        "stock_badge",
        "is_visible",
        "is_hot_deal",
        "is_deleted",
        "updated_at",
    )
    list_filter = ("category", "is_visible", "is_deleted", "is_hot_deal")
    search_fields = ("name", "slug", "description", "product_type")
    prepopulated_fields = {"slug": ("name",)}
    ordering = ("-updated_at", "id")
    readonly_fields = ("id", "total_stock", "created_at", "updated_at")

    def stock_badge(self, obj):
        color = "#ef4444" if obj.total_stock == 0 else "#f59e0b" if obj.total_stock < 5 else "#22c55e"
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.total_stock,
        )
    stock_badge.short_description = "stock"
    stock_badge.admin_order_field = "total_stock"
