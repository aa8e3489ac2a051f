"""
Seed a demo study group with a session starting in 45 minutes and another
starting in 24.5 hours, so both reminder scans have something to pick up.
Safe to run multiple times: skips creation if the demo group already exists.
"""
import sys
from pathlib import Path
from datetime import timedelta

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.clock import utcnow
from app.core.database import database, Base
from app.models import (
    AttendanceStatus,
    GroupMember,
    MemberRole,
    SessionAttendee,
    StudyGroup,
    StudySession,
    User,
)

GROUP_NAME = "[DEMO] Calculus study group"

# (user_id, email, first_name, last_name, attendance_status)
USERS = [
    ("demo-organizer", "organizer@studybuddy.dev", "Olivia", "Organizer", AttendanceStatus.ATTENDING),
    ("demo-ana", "ana@studybuddy.dev", "Ana", "Attending", AttendanceStatus.ATTENDING),
    ("demo-dan", "dan@studybuddy.dev", "Dan", "Declined", AttendanceStatus.DECLINED),
]


def run():
    Base.metadata.create_all(bind=database.engine)
    db = database.session()
    try:
        # ── Idempotency check ────────────────────────────────
        existing = db.query(StudyGroup).filter(StudyGroup.group_name == GROUP_NAME).first()
        if existing:
            print(f"ℹ️  Demo group already exists (id={existing.id}). Nothing to do.")
            return

        # ── Users ─────────────────────────────────────────────
        for user_id, email, first_name, last_name, _ in USERS:
            if not db.query(User).filter(User.id == user_id).first():
                db.add(User(id=user_id, email=email, first_name=first_name, last_name=last_name))
        db.flush()

        organizer_id = USERS[0][0]
        group = StudyGroup(group_name=GROUP_NAME, creator_id=organizer_id)
        db.add(group)
        db.flush()

        for user_id, *_ in USERS:
            role = MemberRole.ADMIN if user_id == organizer_id else MemberRole.MEMBER
            db.add(GroupMember(group_id=group.id, user_id=user_id, role=role.value))

        # ── Sessions ──────────────────────────────────────────
        now = utcnow()
        sessions = [
            StudySession(
                group_id=group.id,
                organizer_id=organizer_id,
                session_title="Limits and continuity",
                scheduled_start=now + timedelta(minutes=45),
                scheduled_end=now + timedelta(minutes=105),
                location="Library room 2",
            ),
            StudySession(
                group_id=group.id,
                organizer_id=organizer_id,
                session_title="Integration by parts",
                scheduled_start=now + timedelta(hours=24, minutes=30),
                scheduled_end=now + timedelta(hours=25, minutes=30),
                location="Online",
            ),
        ]
        db.add_all(sessions)
        db.flush()

        for study_session in sessions:
            for user_id, _, _, _, attendance in USERS:
                db.add(SessionAttendee(
                    session_id=study_session.id,
                    user_id=user_id,
                    attendance_status=attendance.value,
                ))
        db.commit()

        print(f"✅ Demo group created (id={group.id})")
        for study_session in sessions:
            print(f"   Session {study_session.id}: {study_session.session_title} at {study_session.scheduled_start}")

    except Exception as e:
        print(f"❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    run()
