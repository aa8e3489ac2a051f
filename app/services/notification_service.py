"""Notification service."""
import logging
import re
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import to_naive_utc
from app.core.events import EventBus, EventType, event_bus
from app.core.exceptions import (
    FetchError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    store_errors,
)
from app.models.notification import Notification, NOTIFICATION_TYPES
from app.models.study_group import MemberRole
from app.repositories.group_repository import GroupRepository
from app.repositories.notification_repository import NotificationFilter, NotificationRepository
from app.schemas.notification import GroupNotifyRequest, NotificationCreate

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^\s*-?\d+\s*$")


def parse_notification_ids(raw: Any) -> List[int]:
    """
    Keep the integer-like entries of an id list, dropping everything else.

    Raises:
        ValidationError: if `raw` is not a list or nothing usable remains
    """
    if not isinstance(raw, list):
        raise ValidationError("notification_ids array is required")

    ids = []
    for value in raw:
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            ids.append(value)
        elif isinstance(value, float) and value.is_integer():
            ids.append(int(value))
        elif isinstance(value, str) and _INT_RE.match(value):
            ids.append(int(value))

    if not ids:
        raise ValidationError("notification_ids must contain at least one numeric id")
    return list(dict.fromkeys(ids))


def validate_notification_type(notification_type: str) -> str:
    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(
            f"Invalid notification type. Expected one of: {', '.join(NOTIFICATION_TYPES)}"
        )
    return notification_type


class NotificationService:
    """Notification business logic."""

    def __init__(self, db: Session, events: Optional[EventBus] = event_bus):
        self.db = db
        self.repo = NotificationRepository(db)
        self.group_repo = GroupRepository(db)
        self.events = events

    # ------------------------------------------------------------------
    # Creation (API, group fan-out and reminder jobs)
    # ------------------------------------------------------------------

    def create_notification(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        metadata: Optional[Any] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> Notification:
        validate_notification_type(notification_type)
        with store_errors("Failed to create notification", self.db):
            notification = self.repo.create(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                metadata=metadata,
                scheduled_for=scheduled_for,
            )
        self._publish(EventType.NOTIFICATION_CREATED, notification)
        return notification

    def create_from_request(self, payload: NotificationCreate) -> Notification:
        if not payload.user_id or not payload.notification_type or not payload.title or not payload.message:
            raise ValidationError("user_id, notification_type, title, and message are required")
        return self.create_notification(
            user_id=payload.user_id,
            notification_type=payload.notification_type,
            title=payload.title,
            message=payload.message,
            metadata=payload.metadata,
            scheduled_for=to_naive_utc(payload.scheduled_for),
        )

    def notify_group(self, group_id: int, sender_id: str, payload: GroupNotifyRequest) -> int:
        """
        Send one notification to every active member of a group.

        Only the group creator or an active group admin may do this. A failure
        for one member is logged and does not stop the others.
        """
        if not payload.notification_type or not payload.title or not payload.message:
            raise ValidationError("notification_type, title, and message are required")
        validate_notification_type(payload.notification_type)

        with store_errors("Failed to send group notifications", self.db):
            group = self.group_repo.get_active(group_id)
            if not group:
                raise NotFoundError("Study group not found")

            membership = self.group_repo.get_active_membership(group_id, sender_id)
            is_admin = membership is not None and membership.role == MemberRole.ADMIN.value
            if group.creator_id != sender_id and not is_admin:
                raise PermissionDeniedError("Only group creators and admins can send group notifications")

            member_ids = self.group_repo.get_active_member_ids(group_id)

        metadata = {**(payload.metadata or {}), "group_id": group_id}
        sent = 0
        for member_id in member_ids:
            try:
                self.create_notification(
                    member_id,
                    payload.notification_type,
                    payload.title,
                    payload.message,
                    metadata,
                )
                sent += 1
            except Exception:
                logger.exception("Error sending notification to user %s", member_id)
        logger.info("Sent group %s notification to %d/%d members", group_id, sent, len(member_ids))
        return sent

    # ------------------------------------------------------------------
    # Read / manage notifications (used by API endpoints)
    # ------------------------------------------------------------------

    def get_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        notification_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        filters = NotificationFilter(unread_only=unread_only, notification_type=notification_type)
        with store_errors("Failed to fetch notifications", self.db, FetchError):
            return self.repo.get_for_user(user_id, filters, skip=offset, limit=limit)

    def get_counts(self, user_id: str) -> dict:
        with store_errors("Failed to fetch notification counts", self.db, FetchError):
            return self.repo.get_counts(user_id)

    def mark_read(self, user_id: str, notification_id: int) -> Notification:
        with store_errors("Failed to mark notification as read", self.db):
            notification = self.repo.mark_read(user_id, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        self._publish(EventType.NOTIFICATION_READ, notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        with store_errors("Failed to mark all notifications as read", self.db):
            return self.repo.mark_all_read(user_id)

    def delete_notification(self, user_id: str, notification_id: int) -> None:
        with store_errors("Failed to delete notification", self.db):
            deleted = self.repo.delete(user_id, notification_id)
        if not deleted:
            raise NotFoundError("Notification not found")

    # ------------------------------------------------------------------
    # Dispatcher contract
    # ------------------------------------------------------------------

    def get_pending(self, now: Optional[datetime] = None) -> List[Notification]:
        with store_errors("Failed to fetch pending notifications", self.db, FetchError):
            return self.repo.get_pending(now)

    def mark_sent(self, notification_ids: Iterable[int]) -> int:
        with store_errors("Failed to mark notifications as sent", self.db):
            return self.repo.mark_sent(notification_ids)

    def _publish(self, event_type: EventType, notification: Notification) -> None:
        """Announce a committed change. Never raises."""
        if self.events is None:
            return
        try:
            self.events.emit(event_type, {
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "notification_type": notification.notification_type,
                "title": notification.title,
                "message": notification.message,
                "metadata": notification.meta,
                "scheduled_for": notification.scheduled_for,
                "is_read": bool(notification.is_read),
            })
        except Exception:
            logger.exception("Failed to publish %s for notification %s", event_type.value, notification.id)

