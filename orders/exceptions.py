"""Orders error taxonomy.

Checkout errors are DRF `APIException`s so they render straight into 4xx
responses. Archive errors are plain exceptions: they stay inside the
archival side-channel and never reach a client.
"""

from rest_framework import status
from rest_framework.exceptions import APIException

SERVICE_UNAVAILABLE_MESSAGE = "Order service is temporarily unavailable. Please try again in a moment."
LOGIN_AGAIN_MESSAGE = "Authentication failed. Please login again and retry."
MISSING_TOKEN_MESSAGE = "Missing authorization token."


class CheckoutError(APIException):
    """Base class for checkout failures the customer can act on."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Checkout request could not be processed."
    default_code = "checkout_error"


class InvalidInput(CheckoutError):
    default_code = "invalid_input"


class ProductUnavailable(CheckoutError):
    """The product no longer exists or has been soft-deleted."""

    default_code = "product_unavailable"

    def __init__(self, product_name, *, missing=False):
        if missing:
            detail = f"Product no longer exists: {product_name}. Refresh and try again."
        else:
            detail = f"Product is unavailable: {product_name}. Refresh and try again."
        super().__init__(detail)
        self.product_name = product_name


class ColorNotFound(CheckoutError):
    default_code = "color_not_found"

    def __init__(self, product_name, color_name):
        super().__init__(f"Selected color not found for {product_name}. Refresh and try again.")
        self.product_name = product_name
        self.color_name = color_name


class InsufficientStock(CheckoutError):
    default_code = "insufficient_stock"

    def __init__(self, product_name, color_name, requested=None, available=None):
        super().__init__(f"Insufficient stock for {product_name} ({color_name}).")
        self.product_name = product_name
        self.color_name = color_name
        self.requested = requested
        self.available = available


class ArchiveError(Exception):
    """The external order archive could not record an order."""


class TransientArchiveError(ArchiveError):
    """Network-level archive failure that is worth retrying."""
