"""Checkout error rendering.

Every checkout failure is answered with a single `{"message": ...}` body.
Validation errors are reduced to their first message, authentication errors
become "login again" messages, and anything unexpected is logged here and
answered generically so internal error strings never reach the client.
"""

import logging

from django.db import OperationalError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

from orders.exceptions import (
    CheckoutError,
    LOGIN_AGAIN_MESSAGE,
    MISSING_TOKEN_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
)

logger = logging.getLogger("orders.checkout")


def first_error_message(detail):
    """Return the first message of a (possibly nested) DRF error detail, or ""."""
    if isinstance(detail, dict):
        for value in detail.values():
            message = first_error_message(value)
            if message:
                return message
        return ""
    if isinstance(detail, (list, tuple)):
        for value in detail:
            message = first_error_message(value)
            if message:
                return message
        return ""
    return str(detail) if detail is not None else ""


def _auth_headers(exc):
    auth_header = getattr(exc, "auth_header", None)
    return {"WWW-Authenticate": auth_header} if auth_header else None


def checkout_exception_handler(exc, context):
    if isinstance(exc, exceptions.NotAuthenticated):
        return Response({"message": MISSING_TOKEN_MESSAGE}, status=exc.status_code, headers=_auth_headers(exc))
    if isinstance(exc, exceptions.AuthenticationFailed):
        return Response({"message": LOGIN_AGAIN_MESSAGE}, status=exc.status_code, headers=_auth_headers(exc))

    if isinstance(exc, CheckoutError):
        logger.info("Checkout rejected: %s", exc.detail)
        return Response({"message": str(exc.detail)}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        message = first_error_message(response.data) or "Checkout request could not be processed."
        response.data = {"message": message}
        return response

    set_rollback()
    if isinstance(exc, OperationalError):
        logger.exception("Order store unavailable during checkout")
        return Response({"message": SERVICE_UNAVAILABLE_MESSAGE}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

    logger.exception("Unexpected error placing order")
    return Response({"message": SERVICE_UNAVAILABLE_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
