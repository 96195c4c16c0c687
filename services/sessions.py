"""
Refresh-token sessions layered under short-lived access tokens.

- Access tokens are stateless HS256 JWTs (15 minutes by default); validating
  one never touches storage.
- Refresh tokens are opaque random strings persisted in refresh_tokens. Each
  one can be rotated exactly once: rotation inserts the child token and flips
  the parent to revoked with a single conditional UPDATE, so two concurrent
  rotations of the same token cannot both succeed.
- Rows are never deleted; revoked parents point at their child through
  replaced_by_id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import update

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.user import User
from services.errors import InvalidSession, Unauthorized
from utils.security import (
    TokenError,
    create_access_token,
    decode_token,
    generate_refresh_token,
)

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
REFRESH_TOKEN_EXPIRES = timedelta(days=7)


@dataclass
class SessionTokens:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime
    user_id: str
    username: str
    role: str


class SessionManager:
    def __init__(
        self,
        storage,
        credentials,
        *,
        secret: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
        access_expires: timedelta = ACCESS_TOKEN_EXPIRES,
        refresh_expires: timedelta = REFRESH_TOKEN_EXPIRES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.credentials = credentials
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.clock = clock

    # -- access tokens -------------------------------------------------

    def _mint_access_token(self, user: User, now: datetime) -> str:
        return create_access_token(
            user.id,
            secret=self.secret,
            algorithm=self.algorithm,
            expires=self.access_expires,
            now=now,
            issuer=self.issuer,
            audience=self.audience,
            claims={"username": user.username, "role": user.role},
        )

    def validate_access_token(self, token: str) -> Dict[str, Any]:
        """Signature + expiry (against self.clock) only. Returns user_id/username/role claims."""
        if not token:
            raise Unauthorized("Missing access token")
        try:
            decoded = decode_token(
                token,
                secret=self.secret,
                algorithm=self.algorithm,
                issuer=self.issuer,
                audience=self.audience,
                expected_type="access",
                now=self.clock(),
            )
        except TokenError as exc:
            raise Unauthorized(str(exc))
        return {
            "user_id": decoded["sub"],
            "username": decoded.get("username"),
            "role": decoded.get("role"),
            "jti": decoded.get("jti"),
        }

    # -- refresh tokens ------------------------------------------------

    def _new_refresh_token(self, user_id: str, now: datetime, ip_address: str | None) -> RefreshToken:
        return RefreshToken(
            token=generate_refresh_token(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.refresh_expires,
            created_by_ip=ip_address,
        )

    def _tokens(self, user: User, refresh: RefreshToken, now: datetime) -> SessionTokens:
        return SessionTokens(
            access_token=self._mint_access_token(user, now),
            access_expires_at=now + self.access_expires,
            refresh_token=refresh.token,
            refresh_expires_at=refresh.expires_at,
            user_id=user.id,
            username=user.username,
            role=user.role,
        )

    def get_refresh_token(self, value: str) -> Optional[RefreshToken]:
        if not value:
            return None
        session = self.storage.get_session()
        # populate_existing: another thread may have revoked it since we last looked
        return (
            session.query(RefreshToken)
            .populate_existing()
            .filter(RefreshToken.token == value)
            .first()
        )

    def issue_session(self, user: User, ip_address: str | None = None) -> SessionTokens:
        now = self.clock()
        refresh = self._new_refresh_token(user.id, now, ip_address)
        self.storage.new(refresh)
        self.storage.save()
        logger.info("Issued session for user %s", user.username)
        return self._tokens(user, refresh, now)

    def login(self, username: str, password: str, ip_address: str | None = None) -> SessionTokens:
        user = self.credentials.authenticate(username, password)
        return self.issue_session(user, ip_address)

    def rotate(self, presented: str, ip_address: str | None = None) -> SessionTokens:
        """Exchange a live refresh token for a new pair; the presented token dies."""
        now = self.clock()
        current = self.get_refresh_token(presented)
        if current is None:
            raise InvalidSession()
        if current.is_revoked:
            logger.warning(
                "Revoked refresh token presented again (user=%s, token_id=%s, ip=%s)",
                current.user_id, current.id, ip_address,
            )
            raise InvalidSession("Refresh token has been revoked")
        if current.is_expired(now):
            raise InvalidSession("Refresh token expired")

        session = self.storage.get_session()
        user = current.user
        child = self._new_refresh_token(current.user_id, now, ip_address)
        session.add(child)
        try:
            session.flush()
            result = session.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.id == current.id,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .values(revoked_at=now, replaced_by_id=child.id, revoked_by_ip=ip_address)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                session.rollback()
                logger.warning(
                    "Concurrent rotation of refresh token %s rejected (user=%s, ip=%s)",
                    current.id, current.user_id, ip_address,
                )
                raise InvalidSession("Refresh token already used")
            self.storage.save()
        except InvalidSession:
            raise
        except Exception:
            session.rollback()
            raise

        session.refresh(current)
        logger.info("Rotated refresh token for user %s", user.username)
        return self._tokens(user, child, now)

    def revoke(self, token: RefreshToken, ip_address: str | None = None) -> bool:
        """Mark `token` revoked now. Already revoked -> no-op, returns False."""
        now = self.clock()
        session = self.storage.get_session()
        result = session.execute(
            update(RefreshToken)
            .where(RefreshToken.id == token.id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now, revoked_by_ip=ip_address)
            .execution_options(synchronize_session=False)
        )
        self.storage.save()
        session.refresh(token)
        return result.rowcount == 1

    def revoke_by_value(self, value: str, ip_address: str | None = None) -> bool:
        token = self.get_refresh_token(value)
        if token is None:
            return False
        return self.revoke(token, ip_address)
