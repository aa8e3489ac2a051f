"""
Session reminder scheduling.

These jobs run outside any request (cron, Logic Apps recurrence or the
notifications worker). They only insert notification rows; actual delivery is
left to the dispatcher polling the pending list. Repeated invocations are safe:
the hourly scan skips (session, user) pairs that already received a
session_reminder inside the lookback window, and a pair whose insert failed has
no row, so the next run picks it up again.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.events import EventBus, event_bus
from app.core.exceptions import store_errors
from app.models.notification import NotificationType
from app.models.study_session import AttendanceStatus, SessionStatus, StudySession
from app.repositories.notification_repository import DAY_BEFORE_MARKER, NotificationRepository
from app.repositories.session_repository import SessionRepository
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

REMINDABLE_STATUSES = (SessionStatus.SCHEDULED.value, SessionStatus.UPCOMING.value)
CANCELLATION_AUDIENCE = (
    AttendanceStatus.ATTENDING.value,
    AttendanceStatus.ATTENDED.value,
    AttendanceStatus.PENDING.value,
)

HOURLY_WINDOW = timedelta(minutes=60)
DAILY_WINDOW_START = timedelta(hours=24)
DAILY_WINDOW_END = timedelta(hours=25)
DAY_BEFORE = timedelta(hours=24)


def _format_start(start: datetime) -> str:
    return start.strftime("%Y-%m-%d %H:%M UTC")


class ReminderService:
    """Creates reminder and cancellation notifications for study sessions."""

    def __init__(self, db: Session, events: Optional[EventBus] = event_bus):
        self.db = db
        self.sessions = SessionRepository(db)
        self.notifications = NotificationRepository(db)
        self.notification_service = NotificationService(db, events=events)
        self.lookback = timedelta(hours=settings.REMINDER_LOOKBACK_HOURS)
        self.buffer = timedelta(minutes=settings.REMINDER_BUFFER_MINUTES)

    def scan_hourly(self, now: Optional[datetime] = None) -> int:
        """
        Remind attendees of sessions starting within the next hour.

        Each reminder is scheduled a few minutes out so the dispatcher's next
        poll picks it up. Returns the number created; never raises.
        """
        now = now or utcnow()
        created = 0
        try:
            with store_errors("Failed to load upcoming session attendees", self.db):
                rows = self.sessions.get_attendance_between(
                    now,
                    now + HOURLY_WINDOW,
                    REMINDABLE_STATUSES,
                    (AttendanceStatus.ATTENDING.value,),
                )
                already_reminded = self.notifications.get_recent_reminder_keys(
                    since=now - self.lookback,
                    user_ids={attendee.user_id for _, attendee, _ in rows},
                )

            for study_session, attendee, group_name in rows:
                if (attendee.user_id, study_session.id) in already_reminded:
                    continue
                self.notification_service.create_notification(
                    attendee.user_id,
                    NotificationType.SESSION_REMINDER.value,
                    "Study Session Reminder",
                    f'Your study session "{study_session.session_title}" in {group_name or "your group"} '
                    f"starts at {_format_start(study_session.scheduled_start)}.",
                    {
                        "session_id": study_session.id,
                        "group_id": study_session.group_id,
                        "scheduled_start": study_session.scheduled_start.isoformat(),
                    },
                    now + self.buffer,
                )
                created += 1
        except Exception:
            logger.exception("Error sending session reminders")

        logger.info("Sent %d session reminders", created)
        return created

    def schedule_twenty_four_hour(self, session_id: int) -> int:
        """
        Queue a day-before reminder for every attending user of one session.

        Attendees who already hold one for this session are skipped, so repeated
        runs and worker restarts do not duplicate it. A failure for one attendee
        is logged and the rest are still scheduled.

        Raises:
            StoreError: if the session or its attendees cannot be loaded
        """
        with store_errors("Failed to load session attendees", self.db):
            study_session = self.sessions.get_by_id(session_id)
            if study_session is None:
                logger.warning("Session %s not found; no 24-hour reminders scheduled", session_id)
                return 0
            attendees = self.sessions.get_attendees(session_id, (AttendanceStatus.ATTENDING.value,))
            already_scheduled = self.notifications.get_day_before_recipients(
                session_id, {attendee.user_id for attendee in attendees}
            )

        scheduled_for = study_session.scheduled_start - DAY_BEFORE
        created = 0
        for attendee in attendees:
            if attendee.user_id in already_scheduled:
                continue
            try:
                self.notification_service.create_notification(
                    attendee.user_id,
                    NotificationType.SESSION_REMINDER.value,
                    "Study Session Tomorrow",
                    f'Reminder: "{study_session.session_title}" starts at '
                    f"{_format_start(study_session.scheduled_start)}.",
                    {
                        "session_id": study_session.id,
                        "group_id": study_session.group_id,
                        "scheduled_start": study_session.scheduled_start.isoformat(),
                        "reminder": DAY_BEFORE_MARKER,
                    },
                    scheduled_for,
                )
                created += 1
            except Exception:
                logger.exception(
                    "Failed to schedule 24-hour reminder for user %s (session %s)",
                    attendee.user_id,
                    session_id,
                )

        logger.info("Scheduled %d 24-hour reminders for session %s", created, session_id)
        return created

    def schedule_daily_batch(self, now: Optional[datetime] = None) -> dict:
        """
        Schedule day-before reminders for sessions starting 24 to 25 hours from now.

        Meant to run once an hour, so consecutive windows tile without overlap.
        Never raises.
        """
        now = now or utcnow()
        sessions = []
        created = 0
        try:
            with store_errors("Failed to load sessions for 24-hour reminders", self.db):
                sessions = self.sessions.get_starting_between(
                    now + DAILY_WINDOW_START,
                    now + DAILY_WINDOW_END,
                    REMINDABLE_STATUSES,
                )
            for study_session in sessions:
                created += self.schedule_twenty_four_hour(study_session.id)
        except Exception:
            logger.exception("24-hour reminder batch failed")

        logger.info("Scheduled %d 24-hour reminders across %d sessions", created, len(sessions))
        return {"sessions": len(sessions), "created": created}

    def notify_cancelled(self, session_id: int, cancelled_by: Optional[str] = None) -> int:
        """
        Tell everyone who was attending, attended or still pending that a
        session was cancelled. One failed recipient does not stop the rest.

        Raises:
            StoreError: if the session or its attendees cannot be loaded
        """
        with store_errors("Failed to load session attendees", self.db):
            study_session = self.sessions.get_by_id(session_id)
            if study_session is None:
                logger.warning("Session %s not found; no cancellation notices sent", session_id)
                return 0
            attendees = self.sessions.get_attendees(session_id, CANCELLATION_AUDIENCE)

        sent = 0
        for attendee in attendees:
            try:
                self.notification_service.create_notification(
                    attendee.user_id,
                    NotificationType.SYSTEM.value,
                    "Study Session Cancelled",
                    self._cancellation_message(study_session),
                    {
                        "session_id": study_session.id,
                        "group_id": study_session.group_id,
                        "cancelled_by": cancelled_by,
                    },
                )
                sent += 1
            except Exception:
                logger.exception("Failed to notify user %s of cancelled session %s", attendee.user_id, session_id)

        logger.info("Sent %d cancellation notices for session %s", sent, session_id)
        return sent

    @staticmethod
    def _cancellation_message(study_session: StudySession) -> str:
        return (
            f'The study session "{study_session.session_title}" scheduled for '
            f"{_format_start(study_session.scheduled_start)} has been cancelled."
        )
