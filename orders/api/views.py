"""Orders API views.

Place an order from the caller's selected cart lines, list the caller's own
orders, and retrieve a single own order for the confirmation page. Placing an
order answers as soon as the stock transaction commits; the archive of the
order runs afterwards and never changes the response.
"""

from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders.exceptions import InvalidInput
from orders.models import Order
from orders.services import place_order
from .authentication import identity_from_request
from .exceptions import checkout_exception_handler, first_error_message
from .serializers import OrderOutputSerializer, PlaceOrderSerializer


# ----------------------------- helpers (module-level) -----------------------------

def _own_orders_queryset(user):
    """Orders recorded under the authenticated user's uid, newest first."""
    if not user or not user.is_authenticated:
        return Order.objects.none()
    return Order.objects.filter(uid=str(user.pk)).prefetch_related("items").order_by("-created_at")


# --------------------------------------- views ---------------------------------------

class PlaceOrderAPIView(APIView):
    """POST /api/orders/place/ -> {"orderId", "orderNumber", "message"}.

    Errors are always answered as {"message": ...} (see checkout_exception_handler).
    """

    permission_classes = [IsAuthenticated]

    def get_exception_handler(self):
        return checkout_exception_handler

    def post(self, request, *args, **kwargs):
        identity = identity_from_request(request)
        serializer = PlaceOrderSerializer(data=request.data)
        if not serializer.is_valid():
            raise InvalidInput(first_error_message(serializer.errors) or None)

        placed = place_order(
            identity,
            serializer.validated_data["items"],
            serializer.validated_data["customer_details"],
        )
        return Response(
            {
                "orderId": placed.order_id,
                "orderNumber": placed.order_number,
                "message": "Order placed successfully.",
            },
            status=status.HTTP_200_OK,
        )


class OrderListAPIView(generics.ListAPIView):
    """GET: list orders of the authenticated user."""

    serializer_class = OrderOutputSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return _own_orders_queryset(self.request.user)


class OrderDetailAPIView(generics.RetrieveAPIView):
    """GET /api/orders/{orderId}/ -> one of the caller's own orders."""

    serializer_class = OrderOutputSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        """Other users' orders are reported as not found."""
        return _own_orders_queryset(self.request.user)
