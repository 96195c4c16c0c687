from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from models.user import User, ROLE_ADMIN, ROLE_USER
from services.errors import Conflict, NotFound, Unauthorized
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class CredentialStore:
    """User identity records: username, argon2 hash and role."""

    def __init__(self, storage):
        self.storage = storage

    def get_by_username(self, username: str) -> Optional[User]:
        session = self.storage.get_session()
        return session.query(User).filter(User.username == username).first()

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.storage.get(User, user_id)

    def all_user_ids(self) -> List[str]:
        session = self.storage.get_session()
        return [row.id for row in session.query(User.id).order_by(User.created_at).all()]

    def create_user(self, username: str, password: str, role: str | None = None) -> User:
        if self.get_by_username(username):
            raise Conflict("Username already exists")

        user = User(username=username, password_hash=hash_password(password), role=role or ROLE_USER)
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError:
            # lost a race against a concurrent registration of the same name
            raise Conflict("Username already exists")
        logger.info("Registered user %s (%s)", user.username, user.role)
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self.get_by_username(username)
        if user is None:
            raise NotFound("User not found")
        if not verify_password(password, user.password_hash):
            raise Unauthorized("Invalid password")
        return user

    def seed_admin(self, username: str, password: str) -> Optional[User]:
        """Create the first admin account if no admin exists yet."""
        session = self.storage.get_session()
        if session.query(User).filter(User.role == ROLE_ADMIN).first():
            logger.debug("Admin user already exists, skipping seed")
            return None
        user = self.create_user(username, password, ROLE_ADMIN)
        logger.info("Seeded admin user %s", username)
        return user
