"""Study session repository."""
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session

from app.models.study_group import StudyGroup
from app.models.study_session import StudySession, SessionAttendee


class SessionRepository:
    """Study session data access layer."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, session_id: int) -> Optional[StudySession]:
        return self.db.query(StudySession).filter(StudySession.id == session_id).first()

    def get_starting_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
    ) -> List[StudySession]:
        """Sessions whose scheduled_start falls in [start, end]."""
        return (
            self.db.query(StudySession)
            .filter(
                StudySession.scheduled_start >= start,
                StudySession.scheduled_start <= end,
                StudySession.status.in_(list(statuses)),
            )
            .order_by(StudySession.scheduled_start.asc(), StudySession.id.asc())
            .all()
        )

    def get_attendance_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
        attendance_statuses: Iterable[str],
    ) -> List[Tuple[StudySession, SessionAttendee, Optional[str]]]:
        """(session, attendee, group name) for every attendee of sessions starting in [start, end]."""
        return (
            self.db.query(StudySession, SessionAttendee, StudyGroup.group_name)
            .join(SessionAttendee, SessionAttendee.session_id == StudySession.id)
            .outerjoin(StudyGroup, StudyGroup.id == StudySession.group_id)
            .filter(
                StudySession.scheduled_start >= start,
                StudySession.scheduled_start <= end,
                StudySession.status.in_(list(statuses)),
                SessionAttendee.attendance_status.in_(list(attendance_statuses)),
            )
            .order_by(StudySession.scheduled_start.asc(), SessionAttendee.id.asc())
            .all()
        )

    def get_attendees(self, session_id: int, attendance_statuses: Iterable[str]) -> List[SessionAttendee]:
        return (
            self.db.query(SessionAttendee)
            .filter(
                SessionAttendee.session_id == session_id,
                SessionAttendee.attendance_status.in_(list(attendance_statuses)),
            )
            .order_by(SessionAttendee.id.asc())
            .all()
        )

    def update_status(self, study_session: StudySession, status: str) -> StudySession:
        study_session.status = status
        self.db.commit()
        self.db.refresh(study_session)
        return study_session
