"""Order placement.

`place_order` is the only write path for product stock. In one database
transaction it locks every product named by the order, checks and decrements
per-colour stock, re-derives `total_stock`, and inserts the order with its
item snapshots. Any failed check rolls the whole attempt back, so a rejected
order never leaves a partial decrement behind. The archive of the order is
queued with `transaction.on_commit` and therefore only ever sees committed
orders.
"""

import logging
import random
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from functools import partial

from django.conf import settings
from django.db import OperationalError, transaction

from products.models import Product, match_color_name, normalize_colors
from .archive import schedule_archival
from .exceptions import ColorNotFound, InsufficientStock, ProductUnavailable
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = {
    "fullName": "full_name",
    "phonePk": "phone_pk",
    "province": "province",
    "city": "city",
    "tehsil": "tehsil",
    "district": "district",
    "houseAddress": "house_address",
    "shopName": "shop_name",
}


@dataclass(frozen=True)
class Identity:
    """Verified caller identity handed over by the authentication layer."""

    uid: str
    email: str = ""


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    order_number: str


def generate_order_number(now=None, rng=random):
    """Human-facing number `ALM-<last 8 digits of epoch millis>-<100..999>`.

    Not checked for uniqueness; `Order.id` is the real key.
    """
    millis = int((time.time() if now is None else now) * 1000)
    stamp = str(millis)[-8:].zfill(8)
    return f"ALM-{stamp}-{rng.randint(100, 999)}"


def compute_pricing(items):
    subtotal = sum((item["unitPrice"] * item["quantity"] for item in items), Decimal("0"))
    delivery_total = sum((item["deliveryFee"] for item in items), Decimal("0"))
    return {
        "subtotal": subtotal,
        "delivery_total": delivery_total,
        "grand_total": subtotal + delivery_total,
    }


def group_decrements(items):
    """{productId: {colorName: total quantity}} in first-seen order; duplicate lines are summed."""
    grouped = {}
    for item in items:
        by_color = grouped.setdefault(item["productId"], {})
        by_color[item["color"]] = by_color.get(item["color"], 0) + item["quantity"]
    return grouped


def _display_names(items):
    names = {}
    for item in items:
        names.setdefault(item["productId"], item.get("name") or item["productId"])
    return names


def _reserve_stock(items):
    """Lock, check and decrement stock for every product in `items`."""
    decrements = group_decrements(items)
    names = _display_names(items)

    locked = Product.objects.select_for_update().filter(pk__in=list(decrements)).order_by("pk")
    by_id = {p.pk: p for p in locked}

    staged = []
    for product_id, by_color in decrements.items():
        name = names[product_id]
        product = by_id.get(product_id)
        if product is None:
            raise ProductUnavailable(name, missing=True)
        if product.is_deleted:
            raise ProductUnavailable(name)

        colors = normalize_colors(product.colors)
        for color_name, quantity in by_color.items():
            entry = next((c for c in colors if match_color_name(c["colorName"], color_name)), None)
            if entry is None:
                raise ColorNotFound(name, color_name)
            if entry["stock"] < quantity:
                raise InsufficientStock(name, color_name, requested=quantity, available=entry["stock"])
            entry["stock"] -= quantity

        product.colors = colors
        staged.append(product)

    # Writes happen only once every check has passed.
    for product in staged:
        product.save(update_fields=["colors", "total_stock", "updated_at"])


def _create_order(order_id, order_number, identity, items, customer_details, pricing):
    order = Order.objects.create(
        id=order_id,
        order_number=order_number,
        uid=identity.uid,
        email=identity.email or "",
        status=Order.Status.PENDING,
        **pricing,
        **{column: customer_details.get(key) or "" for key, column in CUSTOMER_FIELDS.items()},
    )
    OrderItem.objects.bulk_create(
        [
            OrderItem(
                order=order,
                position=position,
                product_id=item["productId"],
                name=item["name"],
                slug=item["slug"],
                image=item["image"],
                color=item["color"],
                quantity=item["quantity"],
                unit_price=item["unitPrice"],
                delivery_fee=item["deliveryFee"],
                line_total=item["lineTotal"],
            )
            for position, item in enumerate(items, start=1)
        ]
    )
    return order


def place_order(identity, items, customer_details):
    """Atomically reserve stock and persist the order; returns a `PlacedOrder`.

    Raises ProductUnavailable / ColorNotFound / InsufficientStock when the
    current stock cannot satisfy the order. Lock conflicts surfacing as
    OperationalError are retried with a fresh read, unless the caller already
    holds an outer transaction.
    """
    order_id = uuid.uuid4()
    order_number = generate_order_number()
    pricing = compute_pricing(items)

    nested = transaction.get_connection().in_atomic_block
    attempts = 1 if nested else settings.ORDERS_TRANSACTION_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                _reserve_stock(items)
                _create_order(order_id, order_number, identity, items, customer_details, pricing)
                transaction.on_commit(partial(schedule_archival, order_id))
            break
        except OperationalError:
            if attempt >= attempts:
                raise
            logger.warning(
                "Order %s hit a lock conflict (attempt %d/%d); retrying", order_number, attempt, attempts
            )
            time.sleep(0.05 * attempt + random.uniform(0, 0.05))

    logger.info(
        "Placed order %s (%s) for uid=%s: %d item(s), grand total %s",
        order_number,
        order_id,
        identity.uid,
        len(items),
        pricing["grand_total"],
    )
    return PlacedOrder(order_id=str(order_id), order_number=order_number)
