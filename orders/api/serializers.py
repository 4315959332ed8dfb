"""Orders API serializers.

Input serializers turn an untrusted checkout body into a canonical order
draft: strings are trimmed, quantities and money are coerced leniently, and
customer fields are validated with storefront wording. Output serializers
represent stored orders to their owner.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from rest_framework import serializers

from orders.models import Order, OrderItem

PHONE_PK_RE = re.compile(r"^((\+92)|(0))3[0-9]{9}$")
CENT = Decimal("0.01")


def _column_max(model, field_name):
    """Largest value a DecimalField column can store."""
    field = model._meta.get_field(field_name)
    return Decimal(10) ** (field.max_digits - field.decimal_places) - Decimal(1).scaleb(-field.decimal_places)


MAX_ITEM_AMOUNT = _column_max(OrderItem, "unit_price")
MAX_LINE_TOTAL = _column_max(OrderItem, "line_total")
MAX_ORDER_TOTAL = _column_max(Order, "grand_total")


# --------------------------- helpers (pure functions) ---------------------------

def coerce_quantity(value):
    """Integer >= 1; anything non-numeric, non-finite or below one becomes 1."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return max(1, math.floor(number))


def coerce_money(value):
    """Decimal >= 0 with two places; anything non-numeric, non-finite or negative becomes 0."""
    if isinstance(value, bool) or value is None:
        return Decimal("0.00")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    try:
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return Decimal("0.00")


def is_valid_pakistani_phone(value):
    return bool(PHONE_PK_RE.match(str(value or "").strip()))


def _first_filled(*values):
    for v in values:
        if v:
            return v
    return ""


def _required(message):
    return {"required": message, "blank": message, "null": message}


class QuantityField(serializers.Field):
    """Lenient quantity: never fails, see `coerce_quantity`."""

    def __init__(self, **kwargs):
        kwargs.setdefault("allow_null", True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return coerce_quantity(data)

    def to_representation(self, value):
        return int(value)


class MoneyField(serializers.Field):
    """Lenient monetary amount: never fails, see `coerce_money`."""

    def __init__(self, **kwargs):
        kwargs.setdefault("allow_null", True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return coerce_money(data)

    def to_representation(self, value):
        return str(value)


def _optional_text():
    return serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")


# --------------------------------- serializers ---------------------------------

class ProductSnapshotSerializer(serializers.Serializer):
    """Cart-side copy of a product's display fields; only used as a fallback."""

    name = _optional_text()
    slug = _optional_text()
    image = _optional_text()


class CheckoutItemSerializer(serializers.Serializer):
    """One selected cart line.

    `productId` and `colorName` are checked by the parent so the error can
    name the line position.
    """

    productId = _optional_text()
    colorName = _optional_text()
    quantity = QuantityField(required=False, default=1)
    productName = _optional_text()
    productSlug = _optional_text()
    productImage = _optional_text()
    unitPrice = MoneyField(required=False, default=Decimal("0.00"))
    deliveryFee = MoneyField(required=False, default=Decimal("0.00"))
    productSnapshot = ProductSnapshotSerializer(required=False, allow_null=True)


class CustomerDetailsSerializer(serializers.Serializer):
    """Delivery address; every value is trimmed, shopName is optional."""

    fullName = serializers.CharField(max_length=200, error_messages=_required("Full name is required."))
    phonePk = serializers.CharField(max_length=20, error_messages=_required("Phone number is required."))
    province = serializers.CharField(max_length=100, error_messages=_required("Province is required."))
    city = serializers.CharField(max_length=100, error_messages=_required("City is required."))
    tehsil = serializers.CharField(max_length=100, error_messages=_required("Tehsil is required."))
    district = serializers.CharField(max_length=100, error_messages=_required("District is required."))
    houseAddress = serializers.CharField(
        max_length=500, error_messages=_required("House address is required.")
    )
    shopName = serializers.CharField(
        max_length=200, required=False, allow_blank=True, allow_null=True, default=""
    )

    def validate_phonePk(self, value):
        if not is_valid_pakistani_phone(value):
            raise serializers.ValidationError("Enter a valid Pakistani phone number.")
        return value

    def validate_shopName(self, value):
        return (value or "").strip()


class PlaceOrderSerializer(serializers.Serializer):
    """Input serializer for POST /api/orders/place/.

    validated_data holds `items` (OrderItem drafts with `lineTotal`) and
    `customer_details` (normalized), ready for the transaction engine.
    """

    selectedItems = CheckoutItemSerializer(
        many=True,
        allow_empty=False,
        error_messages={
            "required": "Select at least one item before checkout.",
            "null": "Select at least one item before checkout.",
            "empty": "Select at least one item before checkout.",
            "not_a_list": "Select at least one item before checkout.",
        },
    )
    customerDetails = CustomerDetailsSerializer(
        error_messages={
            "required": "Customer details are required.",
            "null": "Customer details are required.",
            "invalid": "Customer details are required.",
        }
    )

    def validate(self, attrs):
        items = []
        for index, line in enumerate(attrs["selectedItems"], start=1):
            product_id = (line.get("productId") or "").strip()
            color = (line.get("colorName") or "").strip()
            if not product_id or not color:
                raise serializers.ValidationError(
                    {"selectedItems": f"Selected item #{index} is missing product or color."}
                )
            item = build_order_item(line, product_id, color)
            if (
                item["unitPrice"] > MAX_ITEM_AMOUNT
                or item["deliveryFee"] > MAX_ITEM_AMOUNT
                or item["lineTotal"] > MAX_LINE_TOTAL
            ):
                raise serializers.ValidationError(
                    {"selectedItems": f"Selected item #{index} has an invalid price."}
                )
            items.append(item)

        total = sum((i["lineTotal"] + i["deliveryFee"] for i in items), Decimal("0"))
        if total > MAX_ORDER_TOTAL:
            raise serializers.ValidationError({"selectedItems": "Order total is too large."})
        return {"items": items, "customer_details": dict(attrs["customerDetails"])}


def build_order_item(line, product_id, color):
    """Snapshot a validated cart line into an OrderItem draft."""
    snapshot = line.get("productSnapshot") or {}
    quantity = coerce_quantity(line.get("quantity"))
    unit_price = coerce_money(line.get("unitPrice"))
    return {
        "productId": product_id,
        "name": _first_filled(
            (line.get("productName") or "").strip(),
            (snapshot.get("name") or "").strip(),
            "Unknown Product",
        ),
        "slug": _first_filled((line.get("productSlug") or "").strip(), (snapshot.get("slug") or "").strip()),
        "image": _first_filled(
            (line.get("productImage") or "").strip(), (snapshot.get("image") or "").strip()
        ),
        "color": color,
        "quantity": quantity,
        "unitPrice": unit_price,
        "deliveryFee": coerce_money(line.get("deliveryFee")),
        "lineTotal": unit_price * quantity,
    }


class OrderItemOutputSerializer(serializers.ModelSerializer):
    productId = serializers.CharField(source="product_id")
    unitPrice = serializers.DecimalField(source="unit_price", max_digits=12, decimal_places=2)
    deliveryFee = serializers.DecimalField(source="delivery_fee", max_digits=12, decimal_places=2)
    lineTotal = serializers.DecimalField(source="line_total", max_digits=14, decimal_places=2)

    class Meta:
        model = OrderItem
        fields = ["productId", "name", "slug", "image", "color", "quantity", "unitPrice", "deliveryFee", "lineTotal"]


class OrderOutputSerializer(serializers.ModelSerializer):
    """Read serializer for returning a complete order to its owner."""

    orderId = serializers.UUIDField(source="id")
    orderNumber = serializers.CharField(source="order_number")
    items = OrderItemOutputSerializer(many=True, read_only=True)
    pricing = serializers.SerializerMethodField()
    customerDetails = serializers.SerializerMethodField()
    archiveStatus = serializers.SerializerMethodField()
    orderSheetId = serializers.CharField(source="order_sheet_id")
    orderSheetUrl = serializers.CharField(source="order_sheet_url")
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")

    class Meta:
        model = Order
        fields = [
            "orderId",
            "orderNumber",
            "email",
            "items",
            "pricing",
            "customerDetails",
            "status",
            "archiveStatus",
            "orderSheetId",
            "orderSheetUrl",
            "createdAt",
            "updatedAt",
        ]

    def get_pricing(self, obj):
        return {k: str(v) for k, v in obj.pricing.items()}

    def get_customerDetails(self, obj):
        return obj.customer_details

    def get_archiveStatus(self, obj):
        return obj.archive_status or None
