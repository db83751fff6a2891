"""
Key-value store holding premium records: first writer wins.
"""
from unittest.mock import MagicMock

from dailydoodle.core.kv import InMemoryKVStore, RedisKVStore, get_kv, set_kv
from dailydoodle.features.entitlements.service import entitlement_service
from dailydoodle.models.subscription import SubscriptionRecord


def test_in_memory_set_nx():
    store = InMemoryKVStore()
    assert store.set_json("k", {"v": 1}, nx=True) is True
    assert store.set_json("k", {"v": 2}, nx=True) is False
    assert store.get_json("k") == {"v": 1}

    assert store.set_json("k", {"v": 3}) is True
    assert store.get_json("k") == {"v": 3}

    store.delete("k")
    assert store.get_json("k") is None


def test_redis_store_maps_set_nx_result():
    store = RedisKVStore("redis://localhost:6379/0")
    store.client = MagicMock()
    store.client.set.return_value = None

    assert store.set_json("user:u:premium", {"status": "active"}, nx=True) is False
    store.client.set.assert_called_once_with("user:u:premium", '{"status": "active"}', nx=True)

    store.client.get.return_value = b'{"status": "active"}'
    assert store.get_json("user:u:premium") == {"status": "active"}


def test_default_store_is_in_memory():
    set_kv(None)
    assert isinstance(get_kv(), InMemoryKVStore)


def test_grant_premium_is_first_writer_wins():
    first = SubscriptionRecord(user_id="user_a", stripe_session_id="cs_1", purchased_at="2026-03-11T12:00:00+00:00")
    second = SubscriptionRecord(user_id="user_a", stripe_session_id="cs_2", purchased_at="2026-03-12T12:00:00+00:00")

    assert entitlement_service.grant_premium(first) is True
    assert entitlement_service.grant_premium(second) is False
    assert entitlement_service.get_subscription_record("user_a").stripe_session_id == "cs_1"


def test_record_without_user_id_field_is_readable():
    get_kv().set_json("user:legacy:premium", {"stripe_session_id": "cs_9", "purchased_at": "2026-01-01T00:00:00Z"})

    record = entitlement_service.get_subscription_record("legacy")

    assert record.user_id == "legacy"
    assert entitlement_service.has_premium("legacy") is True
