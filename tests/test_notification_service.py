import pytest
from sqlalchemy.exc import OperationalError

from app.core.events import EventBus, EventType
from app.core.exceptions import FetchError, NotFoundError, PermissionDeniedError, StoreError, ValidationError
from app.models import Notification
from app.repositories.notification_repository import NotificationRepository
from app.schemas.notification import GroupNotifyRequest, NotificationCreate
from app.services.notification_service import (
    NotificationService,
    parse_notification_ids,
    validate_notification_type,
)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def service(db_session, bus):
    return NotificationService(db_session, events=bus)


class TestParseNotificationIds:
    def test_keeps_integer_like_values(self):
        assert parse_notification_ids([1, "2", 3.0, " 4 "]) == [1, 2, 3, 4]

    def test_drops_everything_else(self):
        assert parse_notification_ids(["abc", 5, None, True, 2.5, {"id": 1}]) == [5]

    def test_deduplicates_in_order(self):
        assert parse_notification_ids([3, "3", 1, 3]) == [3, 1]

    @pytest.mark.parametrize("raw", [None, "1,2", 7, {"ids": [1]}])
    def test_rejects_non_list(self, raw):
        with pytest.raises(ValidationError, match="notification_ids array is required"):
            parse_notification_ids(raw)

    @pytest.mark.parametrize("raw", [[], ["abc", None]])
    def test_rejects_list_without_ids(self, raw):
        with pytest.raises(ValidationError):
            parse_notification_ids(raw)


def test_validate_notification_type_lists_allowed_values():
    with pytest.raises(ValidationError) as exc_info:
        validate_notification_type("bogus")

    assert exc_info.value.message.startswith("Invalid notification type.")
    assert "session_reminder" in exc_info.value.message


def test_create_publishes_created_event(service, bus, users):
    events = []
    bus.subscribe(EventType.NOTIFICATION_CREATED, events.append)

    notification = service.create_notification("alice", "message", "Hi", "Hello there", {"k": "v"})

    assert len(events) == 1
    assert events[0].user_id == "alice"
    assert events[0].data["notification_id"] == notification.id
    assert events[0].data["metadata"] == {"k": "v"}


def test_create_rejects_unknown_type_without_writing(service, bus, db_session, users):
    events = []
    bus.subscribe("*", events.append)

    with pytest.raises(ValidationError):
        service.create_notification("alice", "bogus", "Hi", "Hello")

    assert db_session.query(Notification).count() == 0
    assert events == []


def test_failing_subscriber_does_not_fail_create(service, bus, users):
    def broken(event):
        raise RuntimeError("subscriber bug")

    bus.subscribe(EventType.NOTIFICATION_CREATED, broken)

    notification = service.create_notification("alice", "system", "Hi", "Hello")

    assert notification.id is not None


def test_create_from_request_requires_fields(service, users):
    with pytest.raises(ValidationError, match="user_id, notification_type, title, and message are required"):
        service.create_from_request(NotificationCreate(user_id="alice", notification_type="message", title="Hi"))


def test_store_failure_is_wrapped(service, users, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(NotificationRepository, "create", fail)

    with pytest.raises(StoreError) as exc_info:
        service.create_notification("alice", "message", "Hi", "Hello")

    assert exc_info.value.message == "Failed to create notification"
    assert "locked" not in exc_info.value.message


def test_fetch_failure_is_fetch_error(service, users, monkeypatch):
    def fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("no such table"))

    monkeypatch.setattr(NotificationRepository, "get_for_user", fail)

    with pytest.raises(FetchError):
        service.get_notifications("alice")


def test_mark_read_publishes_read_event(service, bus, users):
    notification = service.create_notification("alice", "message", "Hi", "Hello")
    events = []
    bus.subscribe(EventType.NOTIFICATION_READ, events.append)

    updated = service.mark_read("alice", notification.id)

    assert updated.is_read is True
    assert [e.data["notification_id"] for e in events] == [notification.id]


def test_mark_read_other_users_notification_is_not_found(service, bus, users):
    notification = service.create_notification("alice", "message", "Hi", "Hello")
    events = []
    bus.subscribe(EventType.NOTIFICATION_READ, events.append)

    with pytest.raises(NotFoundError):
        service.mark_read("bob", notification.id)

    assert events == []


def test_delete_missing_is_not_found(service, users):
    with pytest.raises(NotFoundError):
        service.delete_notification("alice", 12345)


class TestNotifyGroup:
    payload = GroupNotifyRequest(notification_type="group_invite", title="Meetup", message="Room 4", metadata={"x": 1})

    def test_creator_reaches_active_members(self, service, db_session, group):
        sent = service.notify_group(group.id, "alice", self.payload)

        assert sent == 3
        rows = db_session.query(Notification).order_by(Notification.user_id).all()
        assert [n.user_id for n in rows] == ["alice", "bob", "carol"]
        assert all(n.meta == {"x": 1, "group_id": group.id} for n in rows)

    def test_group_admin_may_send(self, service, group):
        assert service.notify_group(group.id, "bob", self.payload) == 3

    def test_plain_member_is_forbidden(self, service, group):
        with pytest.raises(PermissionDeniedError):
            service.notify_group(group.id, "carol", self.payload)

    def test_removed_member_is_forbidden(self, service, group):
        with pytest.raises(PermissionDeniedError):
            service.notify_group(group.id, "dave", self.payload)

    def test_inactive_group_is_not_found(self, service, db_session, group):
        group.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError, match="Study group not found"):
            service.notify_group(group.id, "alice", self.payload)

    def test_invalid_type_is_rejected(self, service, group):
        payload = GroupNotifyRequest(notification_type="bogus", title="t", message="m")

        with pytest.raises(ValidationError):
            service.notify_group(group.id, "alice", payload)

    def test_one_failed_member_does_not_stop_the_rest(self, service, group, monkeypatch):
        original = NotificationService.create_notification

        def flaky(self, user_id, *args, **kwargs):
            if user_id == "bob":
                raise StoreError("Failed to create notification")
            return original(self, user_id, *args, **kwargs)

        monkeypatch.setattr(NotificationService, "create_notification", flaky)

        assert service.notify_group(group.id, "alice", self.payload) == 2
