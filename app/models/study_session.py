"""Study session and attendance models."""
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.core.database import Base


class SessionStatus(str, Enum):
    SCHEDULED = "scheduled"
    UPCOMING = "upcoming"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    PENDING = "pending"
    ATTENDING = "attending"
    ATTENDED = "attended"
    ABSENT = "absent"
    DECLINED = "declined"


class StudySession(Base):
    """A scheduled study session inside a group."""

    __tablename__ = "study_sessions"

    id = Column("session_id", Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("study_groups.group_id", ondelete="CASCADE"), nullable=False, index=True)
    organizer_id = Column(String(255), ForeignKey("users.user_id"), nullable=False)
    session_title = Column(String(255), nullable=False)
    scheduled_start = Column(DateTime, nullable=False, index=True)
    scheduled_end = Column(DateTime, nullable=False)
    location = Column(String(500), nullable=True)
    status = Column(String(50), nullable=False, default=SessionStatus.SCHEDULED.value)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    group = relationship("StudyGroup", back_populates="sessions")
    attendees = relationship("SessionAttendee", back_populates="session", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StudySession(id={self.id}, title={self.session_title}, status={self.status})>"


class SessionAttendee(Base):
    """RSVP of one user to one session."""

    __tablename__ = "session_attendees"
    __table_args__ = (UniqueConstraint("session_id", "user_id", name="uq_session_attendees_session_user"),)

    id = Column("attendance_id", Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("study_sessions.session_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    attendance_status = Column(String(50), nullable=False, default=AttendanceStatus.PENDING.value)
    responded_at = Column(DateTime, nullable=True)

    session = relationship("StudySession", back_populates="attendees")
