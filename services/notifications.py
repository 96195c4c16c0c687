"""
Notification fan-out: one Notification row per event, one UserNotification
row per recipient carrying that recipient's read state.

Every write is committed before the matching live event is pushed, so a
client is never told about a notification that failed to persist.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Tuple

from marshmallow import ValidationError
from sqlalchemy import update
from sqlalchemy.orm import contains_eager

from models.base_model import utcnow
from models.notification import Notification, UserNotification
from models.schemas.common import MAX_PAGE_SIZE
from models.user import User, ROLE_ADMIN
from services.live import EVENT_NEW_NOTIFICATION, LivePublisher, user_room

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, storage, live: LivePublisher, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.live = live
        self.clock = clock

    @staticmethod
    def _live_payload(notification: Notification, user_notification_id: str | None = None) -> dict:
        payload = {
            "notification_id": notification.id,
            "message": notification.message,
            "created_at": notification.created_at.isoformat(),
            "is_read": False,
        }
        if user_notification_id:
            payload["id"] = user_notification_id
        return payload

    def create_for_user(self, user_id: str, message: str) -> UserNotification:
        now = self.clock()
        notification = Notification(message=message, user_id=user_id, created_at=now)
        row = UserNotification(user_id=user_id, notification_id=notification.id, is_read=False)
        self.storage.new(notification)
        self.storage.new(row)
        self.storage.save()

        self.push_live(EVENT_NEW_NOTIFICATION, self._live_payload(notification, row.id), room=user_room(user_id))
        return row

    def broadcast_to_all_users(self, message: str) -> Tuple[Notification, int]:
        """Persist one notification fanned out to every known user, atomically."""
        session = self.storage.get_session()
        now = self.clock()
        notification = Notification(message=message, created_at=now)
        session.add(notification)
        try:
            session.flush()
            user_ids = [row.id for row in session.query(User.id).all()]
            session.add_all(
                UserNotification(user_id=uid, notification_id=notification.id, is_read=False)
                for uid in user_ids
            )
            self.storage.save()
        except Exception:
            session.rollback()
            raise

        logger.info("Notification %s fanned out to %d users", notification.id, len(user_ids))
        self.push_live(EVENT_NEW_NOTIFICATION, self._live_payload(notification))
        return notification, len(user_ids)

    def mark_read(self, user_notification_id: str, user_id: str | None = None) -> bool:
        """
        Mark one row read. False when the id is unknown (or, when user_id is
        given, owned by someone else). Already-read rows keep their read_at.
        """
        session = self.storage.get_session()
        row = session.query(UserNotification).populate_existing().filter(
            UserNotification.id == user_notification_id
        ).first()
        if row is None or (user_id is not None and row.user_id != user_id):
            return False
        if row.is_read:
            return True

        session.execute(
            update(UserNotification)
            .where(UserNotification.id == row.id, UserNotification.is_read.is_(False))
            .values(is_read=True, read_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        self.storage.save()
        session.refresh(row)
        return True

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread row of `user_id` read; returns how many changed."""
        session = self.storage.get_session()
        result = session.execute(
            update(UserNotification)
            .where(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
            .values(is_read=True, read_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        self.storage.save()
        return result.rowcount

    def unread_count(self, user_id: str) -> int:
        session = self.storage.get_session()
        return (
            session.query(UserNotification)
            .filter(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
            .count()
        )

    def _visible_rows(self, user_id: str, role: str):
        session = self.storage.get_session()
        query = (
            session.query(UserNotification)
            .join(Notification, Notification.id == UserNotification.notification_id)
            .options(contains_eager(UserNotification.notification))
        )
        if role != ROLE_ADMIN:
            query = query.filter(UserNotification.user_id == user_id)
        return query.order_by(Notification.created_at.desc(), UserNotification.id)

    def list_for_user(
        self, user_id: str, role: str, page: int = 1, page_size: int = 20
    ) -> Tuple[List[UserNotification], int]:
        """Admins see every fan-out row, everyone else only their own; newest first."""
        if page < 1:
            raise ValidationError({"page": ["page must be >= 1"]})
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValidationError({"page_size": [f"page_size must be between 1 and {MAX_PAGE_SIZE}"]})

        query = self._visible_rows(user_id, role)
        total = query.count()
        rows = query.offset((page - 1) * page_size).limit(page_size).all()
        return rows, total

    def latest_for_user(self, user_id: str, role: str, limit: int = 10) -> List[UserNotification]:
        return self._visible_rows(user_id, role).limit(limit).all()

    def push_live(self, event: str, payload: dict, room: str | None = None) -> bool:
        return self.live.push(event, payload, room=room)
