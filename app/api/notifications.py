"""Notifications router."""
from typing import List, Optional
from fastapi import APIRouter, Query, Request, status

from app.api.dependencies import CurrentUser, DbSession, DispatcherCaller
from app.core.exceptions import ValidationError
from app.core.limiter import limiter
from app.services.notification_service import NotificationService, parse_notification_ids
from app.services.reminder_service import ReminderService
from app.schemas.notification import (
    GroupNotifyRequest,
    GroupNotifyResponse,
    MarkSentRequest,
    MarkSentResponse,
    MessageResponse,
    NotificationCounts,
    NotificationCreate,
    NotificationResponse,
    ScheduleResponse,
)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    db: DbSession,
    current_user: CurrentUser,
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50),
    offset: int = Query(0),
    notification_type: Optional[str] = Query(None, alias="type"),
):
    """Get the caller's notifications, newest first."""
    service = NotificationService(db)
    notifications = service.get_notifications(
        current_user.id,
        unread_only=unread_only,
        notification_type=notification_type,
        limit=limit,
        offset=offset,
    )
    return [NotificationResponse.from_model(n) for n in notifications]


@router.get("/counts", response_model=NotificationCounts)
def get_counts(db: DbSession, current_user: CurrentUser):
    """Total and unread counts, polled for the badge."""
    return NotificationService(db).get_counts(current_user.id)


@router.get("/pending", response_model=List[NotificationResponse])
def list_pending(db: DbSession, caller: DispatcherCaller):
    """Scheduled notifications that are due and not yet sent (dispatcher poll)."""
    return [NotificationResponse.from_model(n) for n in NotificationService(db).get_pending()]


@router.put("/read-all", response_model=MessageResponse)
def mark_all_read(db: DbSession, current_user: CurrentUser):
    """Mark all of the caller's notifications as read."""
    count = NotificationService(db).mark_all_read(current_user.id)
    return MessageResponse(message=f"Marked {count} notifications as read")


@router.put("/mark-sent", response_model=MarkSentResponse)
def mark_sent(payload: MarkSentRequest, db: DbSession, caller: DispatcherCaller):
    """Acknowledge delivered notifications (dispatcher ack)."""
    ids = parse_notification_ids(payload.notification_ids)
    count = NotificationService(db).mark_sent(ids)
    return MarkSentResponse(message=f"Marked {count} notifications as sent", updated=count)


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: int, db: DbSession, current_user: CurrentUser):
    """Mark a single notification as read."""
    notification = NotificationService(db).mark_read(current_user.id, notification_id)
    return NotificationResponse.from_model(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(notification_id: int, db: DbSession, current_user: CurrentUser):
    """Delete one of the caller's notifications."""
    NotificationService(db).delete_notification(current_user.id, notification_id)
    return MessageResponse(message="Notification deleted successfully")


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(payload: NotificationCreate, db: DbSession, current_user: CurrentUser):
    """Create a notification (system/admin use)."""
    notification = NotificationService(db).create_from_request(payload)
    return NotificationResponse.from_model(notification)


@router.post("/group/{group_id}/notify", response_model=GroupNotifyResponse)
@limiter.limit("30/minute")
def notify_group(
    request: Request,
    group_id: int,
    payload: GroupNotifyRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Send a notification to every active member of a group (creator or admin only)."""
    sent = NotificationService(db).notify_group(group_id, current_user.id, payload)
    return GroupNotifyResponse(
        message=f"Sent notifications to {sent} group members",
        notifications=sent,
    )


@router.post("/sessions/{session_id}/schedule-24h", response_model=ScheduleResponse)
def schedule_session_reminders(session_id: str, db: DbSession, current_user: CurrentUser):
    """Queue day-before reminders for every attending user of a session."""
    try:
        parsed_id = int(session_id)
    except ValueError:
        raise ValidationError("Invalid session id")
    if parsed_id <= 0:
        raise ValidationError("Invalid session id")

    created = ReminderService(db).schedule_twenty_four_hour(parsed_id)
    return ScheduleResponse(message=f"Scheduled {created} 24-hour reminders", created=created)
