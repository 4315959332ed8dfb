import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.CharField(db_index=True, max_length=32)),
                ("uid", models.CharField(db_index=True, max_length=128)),
                ("email", models.CharField(blank=True, default="", max_length=254)),
                (
                    "subtotal",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "delivery_total",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "grand_total",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("full_name", models.CharField(max_length=200)),
                ("phone_pk", models.CharField(max_length=20)),
                ("province", models.CharField(max_length=100)),
                ("city", models.CharField(max_length=100)),
                ("tehsil", models.CharField(max_length=100)),
                ("district", models.CharField(max_length=100)),
                ("house_address", models.CharField(max_length=500)),
                ("shop_name", models.CharField(blank=True, default="", max_length=200)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "pending"), ("delivered", "delivered"), ("cancelled", "cancelled")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "archive_status",
                    models.CharField(
                        blank=True,
                        choices=[("archived", "archived"), ("delayed", "delayed")],
                        db_index=True,
                        default="",
                        max_length=20,
                    ),
                ),
                ("order_sheet_id", models.CharField(blank=True, default="", max_length=200)),
                ("order_sheet_url", models.URLField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                ("product_id", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=200)),
                ("slug", models.CharField(blank=True, default="", max_length=220)),
                ("image", models.CharField(blank=True, default="", max_length=500)),
                ("color", models.CharField(max_length=100)),
                (
                    "quantity",
                    models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "delivery_fee",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "line_total",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_items",
                "ordering": ["order", "position"],
                "unique_together": {("order", "position")},
            },
        ),
    ]
