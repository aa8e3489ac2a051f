"""Study group and membership models."""
from enum import Enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.clock import utcnow
from app.core.database import Base


class MemberRole(str, Enum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    MEMBER = "member"


class MemberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    REMOVED = "removed"


class StudyGroup(Base):
    """Study group owned by its creator."""

    __tablename__ = "study_groups"

    id = Column("group_id", Integer, primary_key=True, index=True)
    group_name = Column(String(255), nullable=False)
    creator_id = Column(String(255), ForeignKey("users.user_id"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    sessions = relationship("StudySession", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StudyGroup(id={self.id}, name={self.group_name})>"


class GroupMember(Base):
    """Membership of a user in a study group."""

    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),)

    id = Column("membership_id", Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("study_groups.group_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, default=MemberRole.MEMBER.value)
    status = Column(String(50), nullable=False, default=MemberStatus.ACTIVE.value)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    group = relationship("StudyGroup", back_populates="members")
