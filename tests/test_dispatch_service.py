import json
from datetime import timedelta

import httpx
import pytest

from app.core.clock import utcnow
from app.core.events import EventBus
from app.models import Notification
from app.repositories.notification_repository import NotificationRepository
from app.services.dispatch_service import NotificationDispatcher
from app.services.logic_apps_service import LogicAppsClient

EMAIL_URL = "https://logic.example/workflows/email"


def _client(handler) -> LogicAppsClient:
    return LogicAppsClient(email_url=EMAIL_URL, timeout=1.0, transport=httpx.MockTransport(handler))


def _due(db_session, user_id="alice", **kwargs):
    return NotificationRepository(db_session).create(
        user_id=user_id,
        notification_type=kwargs.pop("notification_type", "session_reminder"),
        title=kwargs.pop("title", "Study Session Reminder"),
        message=kwargs.pop("message", "Starts soon"),
        scheduled_for=kwargs.pop("scheduled_for", utcnow() - timedelta(minutes=1)),
        **kwargs,
    )


class TestLogicAppsClient:
    def test_posts_email_payload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202, json={"runId": "abc"})

        result = _client(handler).send_email("a@example.com", "Subject", "Body", "system", {"k": 1})

        assert result == {"success": True, "data": {"runId": "abc"}}
        body = json.loads(requests[0].content)
        assert str(requests[0].url) == EMAIL_URL
        assert body["to"] == "a@example.com"
        assert body["subject"] == "Subject"
        assert body["type"] == "system"
        assert body["metadata"] == {"k": 1}
        assert "timestamp" in body

    def test_http_error_is_reported_not_raised(self):
        result = _client(lambda request: httpx.Response(500)).send_email("a@example.com", "s", "b")

        assert result["success"] is False
        assert "error" in result

    def test_transport_error_is_reported_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _client(handler).send_email("a@example.com", "s", "b")

        assert result["success"] is False
        assert "connection refused" in result["error"]

    def test_unconfigured_url_skips_the_call(self):
        client = LogicAppsClient(email_url="")

        assert client.send_email("a@example.com", "s", "b") == {
            "success": False,
            "message": "Email service not configured",
        }
        assert client.health_check() == {"email_workflow": False}


class TestDeliverPending:
    def test_delivers_and_marks_due_rows(self, db_session, users):
        sent_to = []

        def handler(request):
            sent_to.append(json.loads(request.content)["to"])
            return httpx.Response(200, json={})

        first = _due(db_session, "alice")
        second = _due(db_session, "bob")
        _due(db_session, "carol", scheduled_for=utcnow() + timedelta(hours=1))
        _due(db_session, "carol", scheduled_for=None)

        dispatcher = NotificationDispatcher(db_session, client=_client(handler), events=EventBus())
        result = dispatcher.deliver_pending()

        assert result == {"pending": 2, "delivered": 2, "marked": 2}
        assert sorted(sent_to) == ["alice@example.com", "bob@example.com"]
        db_session.expire_all()
        assert db_session.get(Notification, first.id).sent_at is not None
        assert db_session.get(Notification, second.id).sent_at is not None
        assert dispatcher.deliver_pending() == {"pending": 0, "delivered": 0, "marked": 0}

    def test_transport_failure_leaves_row_pending(self, db_session, users):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        notification = _due(db_session)
        dispatcher = NotificationDispatcher(db_session, client=_client(handler), events=EventBus())

        assert dispatcher.deliver_pending() == {"pending": 1, "delivered": 0, "marked": 0}
        db_session.expire_all()
        assert db_session.get(Notification, notification.id).sent_at is None

    def test_unconfigured_email_still_acknowledges(self, db_session, users):
        notification = _due(db_session)
        dispatcher = NotificationDispatcher(db_session, client=LogicAppsClient(email_url=""), events=EventBus())

        assert dispatcher.deliver_pending() == {"pending": 1, "delivered": 0, "marked": 1}
        db_session.expire_all()
        assert db_session.get(Notification, notification.id).sent_at is not None

    def test_metadata_is_forwarded(self, db_session, users):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        notification = _due(db_session, metadata={"session_id": 9})
        NotificationDispatcher(db_session, client=_client(handler), events=EventBus()).deliver_pending()

        assert bodies[0]["metadata"] == {
            "notification_id": notification.id,
            "user_id": "alice",
            "session_id": 9,
        }
        assert bodies[0]["type"] == "session_reminder"


def test_hourly_scheduling_runs_both_scans(db_session, make_session):
    make_session(timedelta(minutes=30), {"alice": "attending"})
    make_session(timedelta(hours=24, minutes=20), {"bob": "attending", "carol": "attending"})

    dispatcher = NotificationDispatcher(db_session, client=LogicAppsClient(email_url=""), events=EventBus())
    result = dispatcher.run_hourly_scheduling()

    assert result == {"daily": {"sessions": 1, "created": 2}, "hourly": 1}



def test_scheduling_every_quarter_hour_keeps_one_day_before_reminder(db_session, make_session):
    make_session(timedelta(hours=24, minutes=50), {"alice": "attending", "bob": "attending"})
    dispatcher = NotificationDispatcher(db_session, client=LogicAppsClient(email_url=""), events=EventBus())
    now = utcnow()

    for quarter in range(4):
        dispatcher.run_hourly_scheduling(now + timedelta(minutes=15 * quarter))

    rows = db_session.query(Notification).order_by(Notification.user_id).all()
    assert [n.user_id for n in rows] == ["alice", "bob"]
    assert all(n.meta["reminder"] == "24h" for n in rows)


def test_daily_batch_and_reminder_scan_run_separately(db_session, make_session):
    make_session(timedelta(minutes=30), {"alice": "attending"})
    make_session(timedelta(hours=24, minutes=20), {"bob": "attending"})
    dispatcher = NotificationDispatcher(db_session, client=LogicAppsClient(email_url=""), events=EventBus())

    assert dispatcher.run_reminder_scan() == 1
    assert dispatcher.run_daily_batch() == {"sessions": 1, "created": 1}

@pytest.mark.parametrize("status_code", [400, 503])
def test_error_status_leaves_row_pending(db_session, users, status_code):
    _due(db_session)
    client = _client(lambda request: httpx.Response(status_code))

    result = NotificationDispatcher(db_session, client=client, events=EventBus()).deliver_pending()

    assert result == {"pending": 1, "delivered": 0, "marked": 0}
