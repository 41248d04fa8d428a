"""Tests for the room authorization stores."""

import threading
from unittest.mock import MagicMock

import pytest

from hirehub_backend.websocket import room_store as room_store_module
from hirehub_backend.websocket.room_store import (
    InMemoryRoomAuthorizationStore,
    RedisRoomAuthorizationStore,
    get_room_store,
    set_room_store,
)


@pytest.mark.unit
class TestInMemoryRoomAuthorizationStore:

    def test_authorize_then_is_authorized(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        assert store.is_authorized("room_1", "alice")
        assert not store.is_authorized("room_1", "bob")
        assert not store.is_authorized("room_2", "alice")

    def test_revoke_removes_identity(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        store.authorize("room_1", "bob")
        store.revoke("room_1", "alice")
        assert not store.is_authorized("room_1", "alice")
        assert store.is_authorized("room_1", "bob")

    def test_authorize_is_idempotent(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        store.authorize("room_1", "alice")
        assert store.list_authorized("room_1") == {"alice"}

    def test_last_revoke_drops_room(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        store.revoke("room_1", "alice")
        assert store.rooms() == []
        assert store.list_authorized("room_1") == set()

    def test_revoke_unknown_room_or_identity_is_noop(self):
        store = InMemoryRoomAuthorizationStore()
        store.revoke("missing", "alice")
        store.authorize("room_1", "alice")
        store.revoke("room_1", "bob")
        assert store.list_authorized("room_1") == {"alice"}

    def test_list_authorized_returns_copy(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        snapshot = store.list_authorized("room_1")
        snapshot.add("mallory")
        assert store.list_authorized("room_1") == {"alice"}

    def test_is_authorized_has_no_side_effects(self):
        store = InMemoryRoomAuthorizationStore()
        assert not store.is_authorized("room_1", "alice")
        assert store.rooms() == []

    def test_clear_room(self):
        store = InMemoryRoomAuthorizationStore()
        store.authorize("room_1", "alice")
        store.authorize("room_1", "bob")
        store.authorize("room_2", "carol")
        store.clear_room("room_1")
        assert store.list_authorized("room_1") == set()
        assert store.rooms() == ["room_2"]

    def test_concurrent_authorize_and_revoke(self):
        store = InMemoryRoomAuthorizationStore()
        identities = [f"user_{i}" for i in range(50)]

        def churn(identity):
            for _ in range(200):
                store.authorize("room_1", identity)
                store.revoke("room_1", identity)
            store.authorize("room_1", identity)

        threads = [threading.Thread(target=churn, args=(identity,)) for identity in identities]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.list_authorized("room_1") == set(identities)


@pytest.mark.unit
class TestRedisRoomAuthorizationStore:

    def test_operations_map_to_redis_sets(self):
        client = MagicMock()
        client.sismember.return_value = 1
        client.smembers.return_value = {"alice", "bob"}
        store = RedisRoomAuthorizationStore(client=client)

        store.authorize("room_1", "alice")
        client.sadd.assert_called_once_with("ws:room_auth:room_1", "alice")

        assert store.is_authorized("room_1", "alice") is True
        client.sismember.assert_called_once_with("ws:room_auth:room_1", "alice")

        store.revoke("room_1", "alice")
        client.srem.assert_called_once_with("ws:room_auth:room_1", "alice")

        assert store.list_authorized("room_1") == {"alice", "bob"}

        store.clear_room("room_1")
        client.delete.assert_called_once_with("ws:room_auth:room_1")

    def test_rooms_strips_prefix(self):
        client = MagicMock()
        client.scan_iter.return_value = iter(["ws:room_auth:room_1", "ws:room_auth:room_2"])
        store = RedisRoomAuthorizationStore(client=client)

        assert sorted(store.rooms()) == ["room_1", "room_2"]
        client.scan_iter.assert_called_once_with(match="ws:room_auth:*")

    def test_is_authorized_false_for_unknown(self):
        client = MagicMock()
        client.sismember.return_value = 0
        store = RedisRoomAuthorizationStore(client=client)
        assert store.is_authorized("room_1", "alice") is False


@pytest.mark.unit
class TestRoomStoreSelection:

    def test_memory_backend_is_default(self, test_settings):
        set_room_store(None)
        store = get_room_store()
        assert isinstance(store, InMemoryRoomAuthorizationStore)
        assert get_room_store() is store

    def test_redis_backend(self, test_settings, monkeypatch):
        client = MagicMock()
        monkeypatch.setattr(test_settings, "ROOM_STORE_BACKEND", "redis")
        monkeypatch.setattr("hirehub_backend.redis_cache.get_redis_client", lambda: client)
        set_room_store(None)

        store = get_room_store()
        assert isinstance(store, RedisRoomAuthorizationStore)
        store.authorize("room_1", "alice")
        client.sadd.assert_called_once_with("ws:room_auth:room_1", "alice")

    def test_unknown_backend_raises(self, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "ROOM_STORE_BACKEND", "memcached")
        set_room_store(None)
        with pytest.raises(ValueError):
            get_room_store()
        assert room_store_module._room_store is None
