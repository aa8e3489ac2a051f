"""Notification model."""
import json
import logging
from typing import Any, Optional
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.core.database import Base

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Allowed values of notifications.notification_type."""
    SESSION_REMINDER = "session_reminder"
    GROUP_INVITE = "group_invite"
    PROGRESS_UPDATE = "progress_update"
    PARTNER_MATCH = "partner_match"
    MESSAGE = "message"
    SYSTEM = "system"


NOTIFICATION_TYPES = tuple(t.value for t in NotificationType)


class Notification(Base):
    """
    Notification for one user.

    scheduled_for=None means deliver now. A row is pending once scheduled_for
    has passed and sent_at is still NULL; sent_at is never cleared.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "notification_type IN ({})".format(", ".join(f"'{t}'" for t in NOTIFICATION_TYPES)),
            name="ck_notifications_type",
        ),
        Index("ix_notifications_user_read", "user_id", "is_read"),
        Index("ix_notifications_scheduled_sent", "scheduled_for", "sent_at"),
    )

    id                = Column("notification_id", Integer, primary_key=True, index=True)
    user_id           = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    notification_type = Column(String(100), nullable=False)
    title             = Column(String(255), nullable=False)
    message           = Column(Text, nullable=False)
    metadata_json     = Column("metadata", Text, nullable=True)   # JSON text; "metadata" is reserved on Base
    is_read           = Column(Boolean, default=False, nullable=False)
    scheduled_for     = Column(DateTime, nullable=True)
    sent_at           = Column(DateTime, nullable=True)
    created_at        = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="notifications")

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.notification_type})>"

    @property
    def meta(self) -> Optional[Any]:
        """Stored metadata decoded; None when absent or not valid JSON."""
        return decode_metadata(self.metadata_json)

    @meta.setter
    def meta(self, value: Optional[Any]) -> None:
        self.metadata_json = encode_metadata(value)


def encode_metadata(value: Optional[Any]) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


def decode_metadata(raw: Optional[str]) -> Optional[Any]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed notification metadata: %.80r", raw)
        return None
