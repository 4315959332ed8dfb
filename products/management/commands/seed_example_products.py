from django.core.management.base import BaseCommand
from django.utils.text import slugify

from products.models import Product

CLOUDINARY_BASE = "https://res.cloudinary.com/demo/image/upload"


def sample_images(seed):
    return [
        f"{CLOUDINARY_BASE}/w_1200,h_800,c_fill,q_auto/sample.jpg?seed={seed}-1",
        f"{CLOUDINARY_BASE}/w_1200,h_800,c_fill,g_auto,q_auto/sample.jpg?seed={seed}-2",
    ]


EXAMPLES = [
    {
        "name": "Almarky AirBuds X20",
        "description": "Wireless earbuds with deep bass, ENC calling, and 24-hour backup for everyday use.",
        "category": "Electronics",
        "product_type": "Earbuds",
        "images": sample_images("airbuds-x20"),
        "price_mode": "auto",
        "original_price": 5499,
        "discount_percent": 22,
        "delivery_fee": 220,
        "is_hot_deal": True,
        "colors": [
            {"colorName": "Matte Black", "colorHex": "#111827", "stock": 14},
            {"colorName": "Frost White", "colorHex": "#f8fafc", "stock": 9},
            {"colorName": "Navy Blue", "colorHex": "#1e3a8a", "stock": 7},
        ],
    },
    {
        "name": "Almarky Power Bank 20000mAh",
        "description": "Fast charging power bank with dual USB output and Type-C input for travel and office.",
        "category": "Electronics",
        "product_type": "Power Bank",
        "images": sample_images("powerbank-20000"),
        "price_mode": "manual",
        "original_price": 6999,
        "selling_price": 5999,
        "delivery_fee": 260,
        "colors": [
            {"colorName": "Graphite", "colorHex": "#334155", "stock": 11},
            {"colorName": "Silver", "colorHex": "#cbd5e1", "stock": 8},
        ],
    },
    {
        "name": "Almarky Men Casual Shirt",
        "description": "Breathable cotton casual shirt with regular fit for smart daily styling.",
        "category": "Fashion",
        "product_type": "Men Shirt",
        "images": sample_images("men-shirt"),
        "price_mode": "auto",
        "original_price": 2999,
        "discount_percent": 18,
        "delivery_fee": 180,
        "colors": [
            {"colorName": "Sky Blue", "colorHex": "#60a5fa", "stock": 20},
            {"colorName": "Charcoal", "colorHex": "#374151", "stock": 13},
            {"colorName": "Olive", "colorHex": "#4d7c0f", "stock": 10},
        ],
    },
    {
        "name": "Almarky Women Handbag Prime",
        "description": "Premium PU leather handbag with multiple compartments and detachable shoulder strap.",
        "category": "Fashion",
        "product_type": "Women Bag",
        "images": sample_images("women-handbag"),
        "price_mode": "manual",
        "original_price": 4999,
        "selling_price": 4299,
        "delivery_fee": 230,
        "colors": [
            {"colorName": "Classic Tan", "colorHex": "#b45309", "stock": 12},
            {"colorName": "Jet Black", "colorHex": "#111827", "stock": 15},
        ],
    },
]


class Command(BaseCommand):
    help = "Create or update example storefront products."

    def handle(self, *args, **options):
        for cfg in EXAMPLES:
            slug = slugify(cfg["name"])
            product, created = Product.objects.get_or_create(
                slug=slug,
                defaults={"name": cfg["name"]},
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f"Created product '{slug}'"))
            else:
                self.stdout.write(f"Product '{slug}' already exists, refreshing fields")

            for field, value in cfg.items():
                setattr(product, field, value)
            product.is_visible = True
            product.is_deleted = False
            product.save()
            self.stdout.write(f"  → price={product.selling_price}, stock={product.total_stock}")

        self.stdout.write(self.style.SUCCESS("Example products ready."))
