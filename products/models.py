"""Products app models.

Defines the Product model. A product carries its inventory as an ordered list
of colours, each with its own stock; `total_stock` is a cached sum of those
stocks and is re-derived on every save.
"""

import math
import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


def _new_product_id():
    return uuid.uuid4().hex


def _clean_stock(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number))


def normalize_colors(raw):
    """Return a clean copy of a colours list: trimmed strings and integer stock >= 0."""
    if not isinstance(raw, list):
        return []
    colors = []
    for entry in raw:
        entry = entry if isinstance(entry, dict) else {}
        colors.append(
            {
                "colorName": str(entry.get("colorName") or "").strip(),
                "colorHex": str(entry.get("colorHex") or "").strip(),
                "stock": _clean_stock(entry.get("stock")),
            }
        )
    return colors


def match_color_name(left, right):
    return str(left).strip().lower() == str(right).strip().lower()


def compute_selling_price(original_price, discount_percent):
    """Discounted price rounded to whole rupees; discount is clamped to 0..100."""
    original = float(original_price or 0)
    discount = max(0.0, min(100.0, float(discount_percent or 0)))
    return round(original * (1 - discount / 100))


class Product(models.Model):
    """A sellable product with per-colour stock."""

    class PriceMode(models.TextChoices):
        AUTO = "auto", "auto"
        MANUAL = "manual", "manual"

    id = models.CharField(primary_key=True, max_length=64, default=_new_product_id, editable=False)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="")
    product_type = models.CharField(max_length=100, blank=True, default="")
    images = models.JSONField(default=list, blank=True)

    is_visible = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)
    is_hot_deal = models.BooleanField(default=False)

    price_mode = models.CharField(max_length=10, choices=PriceMode.choices, default=PriceMode.AUTO)
    original_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    selling_price = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    delivery_fee = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )

    colors = models.JSONField(default=list, blank=True)
    total_stock = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering = ["-updated_at", "id"]

    def __str__(self):
        return f"{self.name} (#{self.pk})"

    def find_color(self, color_name):
        """Return the colour entry matching `color_name` (case-insensitive) or None."""
        for color in self.colors or []:
            if match_color_name(color.get("colorName", ""), color_name):
                return color
        return None

    def recompute_total_stock(self):
        self.total_stock = sum(int(c.get("stock", 0)) for c in self.colors or [])
        return self.total_stock

    def save(self, *args, **kwargs):
        self.colors = normalize_colors(self.colors)
        self.recompute_total_stock()
        if self.price_mode == self.PriceMode.AUTO:
            self.selling_price = compute_selling_price(self.original_price, self.discount_percent)
        elif self.selling_price is not None and self.selling_price < 0:
            self.selling_price = 0
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "colors" in update_fields:
            kwargs["update_fields"] = list(set(update_fields) | {"total_stock"})
        super().save(*args, **kwargs)
