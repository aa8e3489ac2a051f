"""Study group repository."""
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.study_group import StudyGroup, GroupMember, MemberStatus


class GroupRepository:
    """Study group data access layer."""

    def __init__(self, db: Session):
        self.db = db

    def get_active(self, group_id: int) -> Optional[StudyGroup]:
        """Get an active group by ID."""
        return (
            self.db.query(StudyGroup)
            .filter(StudyGroup.id == group_id, StudyGroup.is_active == True)  # noqa: E712
            .first()
        )

    def get_active_membership(self, group_id: int, user_id: str) -> Optional[GroupMember]:
        return (
            self.db.query(GroupMember)
            .filter(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
                GroupMember.status == MemberStatus.ACTIVE.value,
            )
            .first()
        )

    def get_active_member_ids(self, group_id: int) -> List[str]:
        """User IDs of every active member, in join order."""
        rows = (
            self.db.query(GroupMember.user_id)
            .filter(GroupMember.group_id == group_id, GroupMember.status == MemberStatus.ACTIVE.value)
            .order_by(GroupMember.id.asc())
            .all()
        )
        return [row[0] for row in rows]
