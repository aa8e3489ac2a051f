"""
Test configuration and fixtures for the notifications API tests.
"""
import os
from datetime import timedelta
from typing import Callable, Dict, Generator

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import utcnow
from app.core.database import Base, get_db
from app.core.events import event_bus
from app.core.security import create_access_token
from app.main import app
from app.models import (
    GroupMember,
    MemberRole,
    MemberStatus,
    SessionAttendee,
    StudyGroup,
    StudySession,
    User,
)

# Use in-memory SQLite database for testing
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def reset_event_bus():
    """Listeners registered by one test must not leak into the next."""
    event_bus.clear()
    yield
    event_bus.clear()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    def _make(user_id: str, email: str = None, is_active: bool = True) -> User:
        user = User(
            id=user_id,
            email=email or f"{user_id}@example.com",
            first_name=user_id.capitalize(),
            last_name="Tester",
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def users(make_user) -> Dict[str, User]:
    """alice, bob, carol and dave."""
    return {name: make_user(name) for name in ("alice", "bob", "carol", "dave")}


@pytest.fixture
def group(db_session, users) -> StudyGroup:
    """Group created by alice; bob is an admin, carol a member, dave was removed."""
    study_group = StudyGroup(group_name="Linear Algebra", creator_id="alice")
    db_session.add(study_group)
    db_session.flush()
    db_session.add_all([
        GroupMember(group_id=study_group.id, user_id="alice", role=MemberRole.ADMIN.value),
        GroupMember(group_id=study_group.id, user_id="bob", role=MemberRole.ADMIN.value),
        GroupMember(group_id=study_group.id, user_id="carol", role=MemberRole.MEMBER.value),
        GroupMember(
            group_id=study_group.id,
            user_id="dave",
            role=MemberRole.MEMBER.value,
            status=MemberStatus.REMOVED.value,
        ),
    ])
    db_session.commit()
    return study_group


@pytest.fixture
def make_session(db_session, group) -> Callable[..., StudySession]:
    """
    Create a session in `group` starting `starts_in` from now, with the
    given {user_id: attendance_status} RSVPs.
    """
    def _make(
        starts_in: timedelta,
        attendees: Dict[str, str] = None,
        status: str = "scheduled",
        title: str = "Eigenvalues",
        organizer_id: str = "alice",
    ) -> StudySession:
        start = utcnow() + starts_in
        study_session = StudySession(
            group_id=group.id,
            organizer_id=organizer_id,
            session_title=title,
            scheduled_start=start,
            scheduled_end=start + timedelta(hours=1),
            status=status,
        )
        db_session.add(study_session)
        db_session.flush()
        for user_id, attendance in (attendees or {}).items():
            db_session.add(SessionAttendee(
                session_id=study_session.id,
                user_id=user_id,
                attendance_status=attendance,
            ))
        db_session.commit()
        return study_session
    return _make


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """Bearer header for a user id."""
    def _headers(user_id: str) -> Dict[str, str]:
        token = create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}
    return _headers
