"""
RefreshToken model: one row per refresh grant, kept forever as an audit trail.

Fields:
- token (unique) - opaque random value handed to the client
- user_id (String(36)) - FK to users.id
- created_at (issued-at), expires_at
- revoked_at - set once when the token is rotated or logged out
- replaced_by_id - the child token created when this one was rotated
- created_by_ip / revoked_by_ip
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, utcnow


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    replaced_by_id = Column(String(36), ForeignKey("refresh_tokens.id"), nullable=True)
    created_by_ip = Column(String(64), nullable=True)
    revoked_by_ip = Column(String(64), nullable=True)

    user = relationship("User")
    replaced_by = relationship("RefreshToken", remote_side="RefreshToken.id", uselist=False)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.is_revoked and not self.is_expired(now)

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.is_revoked}>"
