from django.contrib import admin
from django.utils.html import format_html

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    """
    Positionen einer Bestellung (Snapshot, daher komplett readonly).
    """
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ("position", "name", "product_id", "color", "quantity", "unit_price", "delivery_fee", "line_total")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Übersichtliche Order-Verwaltung:
    - Liste: Nummer, Status (Badge), Archiv-Status, Kunde, Stadt, Gesamtpreis, Created
    - Filter: Status, Archiv-Status, Created (Date-Hierarchy)
    - Suche: Nummer, Name, Telefon, E-Mail
    - Readonly: Snapshot-Felder; Status ist editierbar
    """
    inlines = [OrderItemInline]

    list_display = (
        "order_number",
        "status_badge",
        "archive_badge",
        "full_name",
        "phone_pk",
        "city",
        "grand_total",
        "created_at",
    )
    list_filter = ("status", "archive_status", "created_at")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    search_fields = ("order_number", "full_name", "phone_pk", "email", "uid")

    # Nur Status darf im Admin geändert werden; alles andere ist Snapshot
    readonly_fields = (
        "id",
        "order_number",
        "uid",
        "email",
        "subtotal",
        "delivery_total",
        "grand_total",
        "full_name",
        "phone_pk",
        "province",
        "city",
        "tehsil",
        "district",
        "house_address",
        "shop_name",
        "archive_status",
        "order_sheet_id",
        "order_sheet_url",
        "created_at",
        "updated_at",
    )
    fields = ("status",) + readonly_fields

    # Badges
    def status_badge(self, obj):
        color = {
            "pending": "#f59e0b",
            "delivered": "#22c55e",
            "cancelled": "#ef4444",
        }.get(obj.status, "#9ca3af")
        return format_html(
            '<span style="display:inline-block;padding:2px 8px;border-radius:999px;'
            'font-size:12px;font-weight:600;color:#fff;background:{};">{}</span>',
            color,
            obj.status,
        )
    status_badge.short_description = "status"
    status_badge.admin_order_field = "status"

    def archive_badge(self, obj):
        if obj.archive_status == Order.ArchiveStatus.ARCHIVED and obj.order_sheet_url:
            return format_html('<a href="{}" target="_blank" rel="noopener">archived</a>', obj.order_sheet_url)
        return obj.archive_status or "-"
    archive_badge.short_description = "archive"
    archive_badge.admin_order_field = "archive_status"
