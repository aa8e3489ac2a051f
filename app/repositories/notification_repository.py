"""Notification repository."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional, Set, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.models.notification import Notification, NotificationType, decode_metadata

# metadata["reminder"] value carried by day-before session reminders
DAY_BEFORE_MARKER = "24h"


@dataclass(frozen=True)
class NotificationFilter:
    """Optional list filters, each bound as a parameter of the ORM query."""
    unread_only: bool = False
    notification_type: Optional[str] = None

    def clauses(self) -> list:
        clauses = []
        if self.unread_only:
            clauses.append(Notification.is_read == False)  # noqa: E712
        if self.notification_type:
            clauses.append(Notification.notification_type == self.notification_type)
        return clauses


class NotificationRepository:
    """Notification data access layer."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        metadata: Optional[Any] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> Notification:
        """Insert and commit one notification; returns the refreshed row."""
        notification = Notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            scheduled_for=scheduled_for,
        )
        notification.meta = metadata
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get_for_user(
        self,
        user_id: str,
        filters: NotificationFilter = NotificationFilter(),
        skip: int = 0,
        limit: int = 50,
    ) -> List[Notification]:
        """Get a user's notifications, newest first. Negative paging values count as 0."""
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, *filters.clauses())
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(max(skip, 0))
            .limit(max(limit, 0))
            .all()
        )

    def get_counts(self, user_id: str) -> dict:
        """Total, unread and per-type unread counts for one user."""
        unread = Notification.is_read == False  # noqa: E712

        def unread_of(notification_type: NotificationType):
            return func.coalesce(
                func.sum(case((unread & (Notification.notification_type == notification_type.value), 1), else_=0)),
                0,
            )

        row = (
            self.db.query(
                func.count(Notification.id),
                func.coalesce(func.sum(case((unread, 1), else_=0)), 0),
                unread_of(NotificationType.SESSION_REMINDER),
                unread_of(NotificationType.GROUP_INVITE),
                unread_of(NotificationType.PARTNER_MATCH),
            )
            .filter(Notification.user_id == user_id)
            .one()
        )
        return {
            "total_notifications": int(row[0]),
            "unread_notifications": int(row[1]),
            "unread_reminders": int(row[2]),
            "unread_invites": int(row[3]),
            "unread_matches": int(row[4]),
        }

    def mark_read(self, user_id: str, notification_id: int) -> Optional[Notification]:
        """Mark a single notification as read, only if user_id owns it."""
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        """Mark all of a user's unread notifications as read. Returns number updated."""
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .update({"is_read": True}, synchronize_session=False)
        )
        self.db.commit()
        return count

    def delete(self, user_id: str, notification_id: int) -> bool:
        """Delete a notification owned by user_id."""
        count = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count > 0

    def get_pending(self, now: Optional[datetime] = None) -> List[Notification]:
        """Scheduled notifications whose time has come and that were not sent yet."""
        now = now or utcnow()
        return (
            self.db.query(Notification)
            .filter(
                Notification.scheduled_for.isnot(None),
                Notification.scheduled_for <= now,
                Notification.sent_at.is_(None),
            )
            .order_by(Notification.scheduled_for.asc(), Notification.id.asc())
            .all()
        )

    def mark_sent(self, notification_ids: Iterable[int], now: Optional[datetime] = None) -> int:
        """Stamp sent_at on every matching row. Unknown ids are ignored."""
        ids = list(notification_ids)
        if not ids:
            return 0
        count = (
            self.db.query(Notification)
            .filter(Notification.id.in_(ids), Notification.sent_at.is_(None))
            .update({"sent_at": now or utcnow()}, synchronize_session=False)
        )
        self.db.commit()
        return count

    def get_recent_reminder_keys(
        self,
        since: datetime,
        user_ids: Optional[Iterable[str]] = None,
    ) -> Set[Tuple[str, int]]:
        """(user_id, session_id) pairs that already got a session_reminder after `since`."""
        query = self.db.query(Notification.user_id, Notification.metadata_json).filter(
            Notification.notification_type == NotificationType.SESSION_REMINDER.value,
            Notification.created_at > since,
        )
        if user_ids is not None:
            query = query.filter(Notification.user_id.in_(list(user_ids)))

        keys = set()
        for user_id, metadata_json in query.all():
            meta = decode_metadata(metadata_json)
            session_id = meta.get("session_id") if isinstance(meta, dict) else None
            if session_id is None:
                continue
            try:
                keys.add((user_id, int(session_id)))
            except (TypeError, ValueError):
                continue
        return keys

    def get_day_before_recipients(self, session_id: int, user_ids: Iterable[str]) -> Set[str]:
        """Users among `user_ids` already holding a day-before reminder for the session."""
        user_ids = list(user_ids)
        if not user_ids:
            return set()
        rows = (
            self.db.query(Notification.user_id, Notification.metadata_json)
            .filter(
                Notification.notification_type == NotificationType.SESSION_REMINDER.value,
                Notification.user_id.in_(user_ids),
            )
            .all()
        )

        recipients = set()
        for user_id, metadata_json in rows:
            meta = decode_metadata(metadata_json)
            if not isinstance(meta, dict) or meta.get("reminder") != DAY_BEFORE_MARKER:
                continue
            try:
                if int(meta.get("session_id")) == session_id:
                    recipients.add(user_id)
            except (TypeError, ValueError):
                continue
        return recipients
