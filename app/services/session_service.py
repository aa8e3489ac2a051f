"""Study session service."""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.events import EventBus, event_bus
from app.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError, store_errors
from app.models.study_session import SessionStatus, StudySession
from app.repositories.session_repository import SessionRepository
from app.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


class SessionService:
    """Study session business logic."""

    def __init__(self, db: Session, events: Optional[EventBus] = event_bus):
        self.db = db
        self.repo = SessionRepository(db)
        self.reminders = ReminderService(db, events=events)

    def cancel_session(self, session_id: int, user_id: str) -> Tuple[StudySession, int]:
        """
        Cancel a session (organizer only) and notify its attendees.

        Returns:
            The updated session and the number of attendees notified
        """
        with store_errors("Failed to cancel session", self.db):
            study_session = self.repo.get_by_id(session_id)
            if study_session is None:
                raise NotFoundError("Session not found")
            if study_session.organizer_id != user_id:
                raise PermissionDeniedError("Only the organizer can cancel this session")
            if study_session.status == SessionStatus.CANCELLED.value:
                raise ValidationError("Session is already cancelled")
            if study_session.status == SessionStatus.COMPLETED.value:
                raise ValidationError("Completed sessions cannot be cancelled")

            study_session = self.repo.update_status(study_session, SessionStatus.CANCELLED.value)

        notified = self.reminders.notify_cancelled(session_id, cancelled_by=user_id)
        logger.info("Session %s cancelled by %s; %d attendees notified", session_id, user_id, notified)
        return study_session, notified
