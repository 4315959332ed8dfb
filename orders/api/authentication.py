"""Orders API authentication.

Bearer tokens are verified against `rest_framework.authtoken`; the verified
user is reduced to the `Identity` (uid, email) that the order engine records.
"""

from rest_framework.authentication import TokenAuthentication

from orders.services import Identity


class BearerTokenAuthentication(TokenAuthentication):
    """`Authorization: Bearer <token>` instead of DRF's default `Token` keyword."""

    keyword = "Bearer"


def identity_from_request(request) -> Identity:
    user = request.user
    return Identity(uid=str(user.pk), email=getattr(user, "email", "") or "")
