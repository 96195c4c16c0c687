"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT
- Opaque refresh token values and JTI generation
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError

ph = PasswordHasher()

# 64 random bytes -> 512 bits of entropy, ~86 url-safe characters
REFRESH_TOKEN_BYTES = 64


class TokenError(Exception):
    """Raised when a JWT fails signature, expiry or type checks."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def generate_refresh_token() -> str:
    """Unguessable opaque refresh token value."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


def _timestamp(dt: datetime) -> int:
    # naive datetimes in this project are UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def create_access_token(
    subject: str,
    *,
    secret: str,
    algorithm: str,
    expires: timedelta,
    now: datetime,
    issuer: str | None = None,
    audience: str | None = None,
    claims: Dict[str, Any] | None = None,
) -> str:
    """Sign a short-lived access token for `subject` issued at `now`."""
    payload = {
        "sub": str(subject),
        "iat": _timestamp(now),
        "exp": _timestamp(now + expires),
        "type": "access",
        "jti": generate_jti(),
    }
    if issuer:
        payload["iss"] = issuer
    if audience:
        payload["aud"] = audience
    payload.update(claims or {})
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
    token: str,
    *,
    secret: str,
    algorithm: str,
    issuer: str | None = None,
    audience: str | None = None,
    expected_type: str = "access",
    now: datetime | None = None,
) -> Dict[str, Any]:
    """
    Decode and validate a JWT. Raises TokenError on invalid signature/expired jwt
    or when the "type" claim is not `expected_type`.

    When `now` is given, expiry is checked against it instead of the wall clock.
    """
    options = {"require": ["exp", "sub"]}
    if now is not None:
        options.update(verify_exp=False, verify_iat=False)
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
            audience=audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"Invalid token: {exc}")

    if now is not None and decoded["exp"] <= _timestamp(now):
        raise TokenError("Token expired")
    if decoded.get("type") != expected_type:
        raise TokenError("Wrong token type")
    return decoded
