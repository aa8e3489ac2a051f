"""User repository."""
from typing import Optional
from sqlalchemy.orm import Session

from app.models.user import User


class UserRepository:
    """User data access layer."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_active_by_id(self, user_id: str) -> Optional[User]:
        """Get user by ID if the account is active."""
        return (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active == True)  # noqa: E712
            .first()
        )
