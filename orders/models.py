"""Orders app models.

Defines the Order and OrderItem models. An order snapshots every commercial
field of the purchased product/colour lines (name, slug, image, price,
delivery fee) so later product edits never change historical orders. Pricing
totals are derived once at creation time and are never recomputed.
"""

import uuid

from django.core.validators import MinValueValidator
from django.db import models


class Order(models.Model):
    """Represents a placed cash-on-delivery order."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        DELIVERED = "delivered", "delivered"
        CANCELLED = "cancelled", "cancelled"

    class ArchiveStatus(models.TextChoices):
        ARCHIVED = "archived", "archived"
        DELAYED = "delayed", "delayed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=32, db_index=True)

    # Verified identity of the customer at order time.
    uid = models.CharField(max_length=128, db_index=True)
    email = models.CharField(max_length=254, blank=True, default="")

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    delivery_total = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    grand_total = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])

    full_name = models.CharField(max_length=200)
    phone_pk = models.CharField(max_length=20)
    province = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    tehsil = models.CharField(max_length=100)
    district = models.CharField(max_length=100)
    house_address = models.CharField(max_length=500)
    shop_name = models.CharField(max_length=200, blank=True, default="")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    # Set by the archival side-channel after commit; blank until it runs.
    archive_status = models.CharField(
        max_length=20, choices=ArchiveStatus.choices, blank=True, default="", db_index=True
    )
    order_sheet_id = models.CharField(max_length=200, blank=True, default="")
    order_sheet_url = models.URLField(max_length=500, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        """Readable representation for admin and debugging."""
        return f"Order<{self.order_number} {self.status}>"

    @property
    def customer_details(self) -> dict:
        return {
            "fullName": self.full_name,
            "phonePk": self.phone_pk,
            "province": self.province,
            "city": self.city,
            "tehsil": self.tehsil,
            "district": self.district,
            "houseAddress": self.house_address,
            "shopName": self.shop_name,
        }

    @property
    def pricing(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "deliveryTotal": self.delivery_total,
            "grandTotal": self.grand_total,
        }


class OrderItem(models.Model):
    """Immutable snapshot of one cart line at order time."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField()

    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=200)
    slug = models.CharField(max_length=220, blank=True, default="")
    image = models.CharField(max_length=500, blank=True, default="")
    color = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    line_total = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])

    class Meta:
        db_table = "order_items"
        ordering = ["order", "position"]
        unique_together = ("order", "position")

    def __str__(self) -> str:
        return f"{self.quantity} x {self.name} ({self.color})"
