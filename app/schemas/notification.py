"""Notification schemas."""
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, field_serializer, field_validator

from app.models.notification import Notification


class NotificationCreate(BaseModel):
    """Create request. Required fields are checked by the service so they map to 400."""
    user_id: Optional[str] = None
    notification_type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    metadata: Optional[Any] = None
    scheduled_for: Optional[datetime] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v):
        return str(v) if v is not None else None


class GroupNotifyRequest(BaseModel):
    notification_type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    metadata: Optional[dict] = None


class MarkSentRequest(BaseModel):
    # Loosely typed on purpose: non-numeric entries are dropped, not rejected.
    notification_ids: Optional[Any] = None


class NotificationResponse(BaseModel):
    notification_id: int
    user_id: str
    notification_type: str
    title: str
    message: str
    metadata: Optional[Any] = None
    scheduled_for: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    is_read: bool
    created_at: datetime

    @field_serializer("scheduled_for", "sent_at", "created_at")
    def serialize_utc(self, value: Optional[datetime]) -> Optional[str]:
        # Stored naive UTC; emit an explicit offset so clients do not read local time
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            notification_id=notification.id,
            user_id=notification.user_id,
            notification_type=notification.notification_type,
            title=notification.title,
            message=notification.message,
            metadata=notification.meta,
            scheduled_for=notification.scheduled_for,
            sent_at=notification.sent_at,
            is_read=bool(notification.is_read),
            created_at=notification.created_at,
        )


class NotificationCounts(BaseModel):
    total_notifications: int
    unread_notifications: int
    unread_reminders: int
    unread_invites: int
    unread_matches: int


class MessageResponse(BaseModel):
    message: str


class GroupNotifyResponse(BaseModel):
    message: str
    notifications: int


class MarkSentResponse(BaseModel):
    message: str
    updated: int


class ScheduleResponse(BaseModel):
    message: str
    created: int


class ReminderScanResponse(BaseModel):
    message: str
    created: int
    sessions: Optional[int] = None
