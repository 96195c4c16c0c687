from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Notification(BaseModel, Base):
    __tablename__ = "notifications"

    message = Column(String(500), nullable=False)
    # Set when the notification targets a single user; NULL for broadcasts
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)

    recipients = relationship("UserNotification", back_populates="notification")

    __table_args__ = (
        Index("ix_notifications_created_at", "created_at"),
    )


class UserNotification(BaseModel, Base):
    """Per-recipient read state of a Notification."""
    __tablename__ = "user_notifications"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    notification_id = Column(
        String(36), ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)

    notification = relationship("Notification", back_populates="recipients")

    __table_args__ = (
        UniqueConstraint("user_id", "notification_id", name="uq_user_notifications_user_notification"),
    )
