"""
Notification service: read state, unread counter cache, realtime fan-out.
"""
import pytest

from dailydoodle.core.errors import NotFoundError, ValidationError
from dailydoodle.features.notifications.hub import NotificationHub
from dailydoodle.features.notifications.service import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    NotificationService,
    UnreadCountCache,
    clamp_limit,
)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def service():
    return NotificationService(hub=NotificationHub())


def _notify(service, user_id="user_a", title="Hello"):
    return service.notify(user_id, "system_announcement", title, "Body text")


def test_clamp_limit():
    assert clamp_limit(None) == DEFAULT_LIMIT
    assert clamp_limit(0) == DEFAULT_LIMIT
    assert clamp_limit(500) == MAX_LIMIT
    assert clamp_limit(-3) == 1
    assert clamp_limit(10) == 10


def test_cache_expires_after_ttl():
    clock = FakeClock()
    cache = UnreadCountCache(ttl_seconds=10, clock=clock)
    cache.put("user_a", 4)

    clock.now += 9
    assert cache.get("user_a") == 4
    clock.now += 1
    assert cache.get("user_a") is None


def test_cache_is_keyed_and_invalidated():
    cache = UnreadCountCache(ttl_seconds=10, clock=FakeClock())
    cache.put("user_a", 2)

    assert cache.get("user_b") is None
    cache.invalidate("user_b")
    assert cache.get("user_a") == 2
    cache.invalidate("user_a")
    assert cache.get("user_a") is None


def test_cache_set_zero():
    cache = UnreadCountCache(ttl_seconds=10, clock=FakeClock())
    cache.set_zero("user_a")
    assert cache.get("user_a") == 0


def test_notify_rejects_unknown_type(service):
    with pytest.raises(ValidationError):
        service.notify("user_a", "not_a_type", "t", "b")


def test_list_is_newest_first_and_scoped_to_owner(service):
    _notify(service, title="first")
    _notify(service, title="second")
    _notify(service, user_id="user_b", title="other")

    rows, total = service.list_notifications("user_a")

    assert total == 2
    assert [n.title for n in rows] == ["second", "first"]


def test_pagination(service):
    for i in range(5):
        _notify(service, title=f"n{i}")

    rows, total = service.list_notifications("user_a", limit=2, offset=2)

    assert total == 5
    assert [n.title for n in rows] == ["n2", "n1"]


def test_unread_counter_tracks_mutations(service):
    first = _notify(service)
    _notify(service)
    assert service.unread_count("user_a") == 2

    service.mark_read("user_a", first.id)
    assert service.unread_count("user_a") == 1

    assert service.mark_all_read("user_a") == 1
    assert service.unread_count("user_a") == 0
    assert service.count_unread("user_a") == 0


def test_unread_cache_holds_one_user_at_a_time(service):
    _notify(service)
    _notify(service, user_id="user_b")
    _notify(service, user_id="user_b")

    assert service.unread_count("user_a") == 1
    assert service.unread_count("user_b") == 2
    assert service.unread_cache.key == "user_b"
    # switching users re-reads the store rather than serving the other entry
    assert service.unread_count("user_a") == 1
    assert service.unread_cache.key == "user_a"


def test_mark_read_is_monotonic(service):
    created = _notify(service)

    once = service.mark_read("user_a", created.id)
    twice = service.mark_read("user_a", created.id)

    assert once.read_at is not None
    assert twice.read_at == once.read_at


def test_mark_read_other_users_notification_is_not_found(service):
    created = _notify(service, user_id="user_b")
    with pytest.raises(NotFoundError):
        service.mark_read("user_a", created.id)


def test_delete_all_read_keeps_unread(service):
    read = _notify(service)
    _notify(service)
    service.mark_read("user_a", read.id)

    assert service.delete_all_read("user_a") == 1
    rows, total = service.list_notifications("user_a")
    assert total == 1
    assert rows[0].read_at is None


def test_delete_missing_notification(service):
    with pytest.raises(NotFoundError):
        service.delete_notification("user_a", 9999)


def test_create_narrows_target_for_non_admins(service):
    created = service.create_notification(
        actor_id="user_a",
        actor_is_admin=False,
        type="system_announcement",
        title="t",
        body="b",
        target_user_id="user_b",
    )
    assert created.user_id == "user_a"

    created = service.create_notification(
        actor_id="admin",
        actor_is_admin=True,
        type="system_announcement",
        title="t",
        body="b",
        target_user_id="user_b",
    )
    assert created.user_id == "user_b"


def test_create_requires_fields(service):
    with pytest.raises(ValidationError):
        service.create_notification(actor_id="user_a", actor_is_admin=False, type="system_announcement", title="", body="b")


def test_hub_delivers_to_owner_only():
    hub = NotificationHub()
    service = NotificationService(hub=hub)
    received_a, received_b = [], []
    hub.subscribe("user_a", received_a.append)
    hub.subscribe("user_b", received_b.append)

    _notify(service)

    assert len(received_a) == 1
    assert received_a[0]["type"] == "notification.created"
    assert received_a[0]["notification"]["user_id"] == "user_a"
    assert received_b == []


def test_hub_unsubscribe_and_failing_subscriber():
    hub = NotificationHub()
    service = NotificationService(hub=hub)

    def broken(message):
        raise RuntimeError("socket gone")

    hub.subscribe("user_a", broken)
    received = []
    unsubscribe = hub.subscribe("user_a", received.append)

    _notify(service)
    assert len(received) == 1
    # failing callback was dropped
    assert hub.subscriber_count("user_a") == 1

    unsubscribe()
    assert hub.subscriber_count("user_a") == 0
