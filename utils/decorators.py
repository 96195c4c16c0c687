from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from services.errors import Forbidden, Unauthorized

ACCESS_COOKIE = "jwt"


def get_access_token_from_request() -> str | None:
    """Bearer header first, then the HttpOnly `jwt` cookie set at login."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(ACCESS_COOKIE)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = get_access_token_from_request()
            if not token:
                raise Unauthorized("Missing or invalid Authorization header")
            # stateless: claims come from the signed token, no user lookup
            claims = current_app.extensions["session_manager"].validate_access_token(token)
            g.current_user = claims
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(required_roles: list[str]):
    """
    Allow access if the token's role is ANY of the required roles.
    """
    req = set(required_roles or [])

    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_user.get("role") not in req:
                raise Forbidden("Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
