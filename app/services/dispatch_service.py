"""
Delivery of scheduled notifications.

The dispatcher polls the pending list, hands each row to the email workflow
and acknowledges the batch with a single mark-sent update. Rows whose delivery
hit a transport error are left pending and retried on the next poll.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.events import EventBus, event_bus
from app.models.notification import Notification
from app.repositories.user_repository import UserRepository
from app.services.logic_apps_service import LogicAppsClient
from app.services.notification_service import NotificationService
from app.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Polls pending notifications and delivers them."""

    def __init__(
        self,
        db: Session,
        client: Optional[LogicAppsClient] = None,
        events: Optional[EventBus] = event_bus,
    ):
        self.db = db
        self.client = client or LogicAppsClient()
        self.events = events
        self.notification_service = NotificationService(db, events=events)
        self.users = UserRepository(db)

    def deliver_pending(self, now: Optional[datetime] = None) -> dict:
        """Deliver everything that is due. Returns {"pending", "delivered", "marked"}."""
        pending = self.notification_service.get_pending(now)
        if not pending:
            return {"pending": 0, "delivered": 0, "marked": 0}

        acknowledged = []
        delivered = 0
        for notification in pending:
            result = self._deliver(notification)
            if result.get("error"):
                continue
            if result.get("success"):
                delivered += 1
            acknowledged.append(notification.id)

        marked = self.notification_service.mark_sent(acknowledged) if acknowledged else 0
        logger.info(
            "Dispatched %d/%d pending notifications, marked %d as sent",
            delivered,
            len(pending),
            marked,
        )
        return {"pending": len(pending), "delivered": delivered, "marked": marked}

    def run_daily_batch(self, now: Optional[datetime] = None) -> dict:
        """Queue day-before reminders for sessions starting 24 to 25 hours out."""
        return ReminderService(self.db, events=self.events).schedule_daily_batch(now)

    def run_reminder_scan(self, now: Optional[datetime] = None) -> int:
        """Queue reminders for sessions starting within the next hour."""
        return ReminderService(self.db, events=self.events).scan_hourly(now)

    def run_hourly_scheduling(self, now: Optional[datetime] = None) -> dict:
        """Both reminder passes, day-before first."""
        return {"daily": self.run_daily_batch(now), "hourly": self.run_reminder_scan(now)}

    def _deliver(self, notification: Notification) -> dict:
        user = self.users.get_by_id(notification.user_id)
        if user is None or not user.email:
            logger.warning("No email address for user %s; notification %s stays in-app only",
                           notification.user_id, notification.id)
            return {"success": False, "message": "No recipient address"}

        return self.client.send_email(
            to=user.email,
            subject=notification.title,
            body=notification.message,
            email_type=notification.notification_type,
            metadata={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                **(notification.meta if isinstance(notification.meta, dict) else {}),
            },
        )
