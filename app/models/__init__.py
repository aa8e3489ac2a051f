"""Database models."""
from app.models.user import User
from app.models.study_group import StudyGroup, GroupMember, MemberRole, MemberStatus
from app.models.study_session import StudySession, SessionAttendee, SessionStatus, AttendanceStatus
from app.models.notification import Notification, NotificationType, NOTIFICATION_TYPES

__all__ = [
    "User",
    "StudyGroup",
    "GroupMember",
    "MemberRole",
    "MemberStatus",
    "StudySession",
    "SessionAttendee",
    "SessionStatus",
    "AttendanceStatus",
    "Notification",
    "NotificationType",
    "NOTIFICATION_TYPES",
]
