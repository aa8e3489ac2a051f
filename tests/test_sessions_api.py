from datetime import timedelta

import pytest

from app.models import Notification, StudySession


def test_organizer_cancels_and_attendees_are_told(client, db_session, make_session, auth_headers):
    study_session = make_session(
        timedelta(hours=5),
        {"alice": "attending", "bob": "pending", "carol": "declined"},
    )

    response = client.put(f"/api/sessions/{study_session.id}/cancel", headers=auth_headers("alice"))

    assert response.status_code == 200
    assert response.json() == {
        "message": "Session cancelled",
        "session_id": study_session.id,
        "status": "cancelled",
        "notified": 2,
    }
    db_session.expire_all()
    assert db_session.get(StudySession, study_session.id).status == "cancelled"
    notices = db_session.query(Notification).order_by(Notification.user_id).all()
    assert [n.user_id for n in notices] == ["alice", "bob"]
    assert all(n.notification_type == "system" for n in notices)


def test_non_organizer_is_forbidden(client, db_session, make_session, auth_headers):
    study_session = make_session(timedelta(hours=5), {"bob": "attending"})

    response = client.put(f"/api/sessions/{study_session.id}/cancel", headers=auth_headers("bob"))

    assert response.status_code == 403
    assert db_session.query(Notification).count() == 0


@pytest.mark.parametrize("status", ["cancelled", "completed"])
def test_finished_sessions_cannot_be_cancelled(client, make_session, auth_headers, status):
    study_session = make_session(timedelta(hours=-2), {"bob": "attending"}, status=status)

    response = client.put(f"/api/sessions/{study_session.id}/cancel", headers=auth_headers("alice"))

    assert response.status_code == 400


def test_unknown_session_is_404(client, users, auth_headers):
    response = client.put("/api/sessions/4242/cancel", headers=auth_headers("alice"))

    assert response.status_code == 404
    assert response.json()["error"] == "Session not found"


def test_cancelled_session_gets_no_reminders(client, db_session, make_session, auth_headers):
    study_session = make_session(timedelta(minutes=40), {"alice": "attending", "bob": "attending"})
    client.put(f"/api/sessions/{study_session.id}/cancel", headers=auth_headers("alice"))

    response = client.post("/api/scheduled-tasks/session-reminders/1h", headers=auth_headers("alice"))

    assert response.json()["created"] == 0
    assert db_session.query(Notification).filter_by(notification_type="session_reminder").count() == 0
