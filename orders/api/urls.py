from django.urls import path
from .views import OrderDetailAPIView, OrderListAPIView, PlaceOrderAPIView

urlpatterns = [
    path("orders/", OrderListAPIView.as_view(), name="order-list"),
    path("orders/place/", PlaceOrderAPIView.as_view(), name="order-place"),
    path("orders/<uuid:pk>/", OrderDetailAPIView.as_view(), name="order-detail"),
]
