"""
Bearer token authentication.

Tokens are signed with the project SECRET_KEY through django.core.signing
and carry the user id plus a timestamp. resolve_identity() is the single
entry point the views use to turn a request into a User.
"""

import logging
from functools import wraps

from django.conf import settings
from django.core import signing

from .errors import Unauthorized
from .models import User


logger = logging.getLogger(__name__)

TOKEN_SALT = "social.auth.token"


def issue_token(user):
    return signing.dumps({"id": str(user.pk)}, salt=TOKEN_SALT, compress=True)


def read_token(token):
    """Return the user id carried by a token, or raise Unauthorized."""
    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=settings.TOKEN_MAX_AGE)
    except signing.SignatureExpired:
        raise Unauthorized("Token expired")
    except signing.BadSignature:
        raise Unauthorized("Token is not valid")
    return payload.get("id")


def get_bearer_token(request):
    header = request.META.get("HTTP_AUTHORIZATION", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_identity(request):
    token = get_bearer_token(request)
    if token is None:
        raise Unauthorized("No token, authorization denied")
    user_id = read_token(token)
    user = User.objects.filter(pk=user_id, is_active=True).first() if user_id else None
    if user is None:
        logger.info("Rejected token for unknown or inactive user")
        raise Unauthorized("Token is not valid")
    return user


def token_required(view_func):
    """Resolve the caller before the view runs and expose it as request.identity."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        request.identity = resolve_identity(request)
        return view_func(request, *args, **kwargs)
    return wrapper
