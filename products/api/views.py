"""Products API views.

Public, read-only storefront endpoints: a paginated product list with search,
category filtering and ordering, and a product detail looked up by slug.
Hidden and soft-deleted products are never exposed.
"""

from django.db.models import Q
from rest_framework import generics
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny

from products.models import Product
from .serializers import ProductDetailSerializer, ProductListSerializer


def _storefront_queryset():
    return Product.objects.filter(is_visible=True, is_deleted=False)


class ProductsPagination(PageNumberPagination):
    """Default pagination for products with an adjustable page size via query param."""

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


class ProductListAPIView(generics.ListAPIView):
    """GET: paginated list of visible products with filters."""

    serializer_class = ProductListSerializer
    pagination_class = ProductsPagination
    authentication_classes = []
    permission_classes = [AllowAny]

    def get_queryset(self):
        qs = self._apply_filters(_storefront_queryset(), self.request.query_params)
        return self._apply_ordering(qs, self.request.query_params.get("ordering"))

    # --- helpers ---
    def _apply_filters(self, qs, params):
        category = params.get("category")
        if category:
            qs = qs.filter(category__iexact=category.strip())

        search = params.get("search")
        if search:
            qs = qs.filter(
                Q(name__icontains=search)
                | Q(description__icontains=search)
                | Q(product_type__icontains=search)
            )

        if params.get("hot_deals") in ("1", "true"):
            qs = qs.filter(is_hot_deal=True)
        return qs

    def _apply_ordering(self, qs, ordering):
        if not ordering:
            return qs.order_by("-updated_at", "id")

        allowed = {"updated_at", "-updated_at", "selling_price", "-selling_price"}
        if ordering not in allowed:
            raise ValidationError(
                {"ordering": "Allowed values: updated_at, -updated_at, selling_price, -selling_price."}
            )
        return qs.order_by(ordering, "id")


class ProductDetailAPIView(generics.RetrieveAPIView):
    """GET /api/products/{slug}/ -> return a single visible product."""

    serializer_class = ProductDetailSerializer
    authentication_classes = []
    permission_classes = [AllowAny]
    lookup_field = "slug"

    def get_queryset(self):
        return _storefront_queryset()
