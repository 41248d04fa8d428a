"""
Room authorization store.

Fast-path cache of which external identities may connect to which room.
It is never the source of truth: the session table is, and the connection
gateway rebuilds missing entries from it. Losing this store (restart,
Redis flush) only costs one database lookup per reconnecting user.

Every operation is synchronous and each mutation is one atomic step, so
no caller can observe a half-applied change across an `await`.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from hirehub_backend.settings import settings

logger = logging.getLogger(__name__)

ROOM_AUTH_PREFIX = "ws:room_auth:"


class RoomAuthorizationStore(ABC):

    @abstractmethod
    def authorize(self, room_id: str, identity: str) -> None:
        """Add identity to the room's set, creating the room if needed. Idempotent."""

    @abstractmethod
    def revoke(self, room_id: str, identity: str) -> None:
        """Remove identity; drop the room once its set is empty. No-op when absent."""

    @abstractmethod
    def is_authorized(self, room_id: str, identity: str) -> bool:
        ...

    @abstractmethod
    def list_authorized(self, room_id: str) -> Set[str]:
        """Snapshot of the room's identities; empty for unknown rooms."""

    @abstractmethod
    def clear_room(self, room_id: str) -> None:
        ...

    @abstractmethod
    def rooms(self) -> List[str]:
        ...


class InMemoryRoomAuthorizationStore(RoomAuthorizationStore):
    """Process-local store. Correct for a single worker process."""

    def __init__(self):
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def authorize(self, room_id: str, identity: str) -> None:
        with self._lock:
            self._rooms.setdefault(room_id, set()).add(identity)

    def revoke(self, room_id: str, identity: str) -> None:
        with self._lock:
            members = self._rooms.get(room_id)
            if members is None:
                return
            members.discard(identity)
            if not members:
                del self._rooms[room_id]

    def is_authorized(self, room_id: str, identity: str) -> bool:
        with self._lock:
            return identity in self._rooms.get(room_id, ())

    def list_authorized(self, room_id: str) -> Set[str]:
        with self._lock:
            return set(self._rooms.get(room_id, ()))

    def clear_room(self, room_id: str) -> None:
        with self._lock:
            self._rooms.pop(room_id, None)

    def rooms(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())


class RedisRoomAuthorizationStore(RoomAuthorizationStore):
    """
    Store shared by every worker through Redis sets.

    Redis removes a set when its last member is removed, so empty rooms
    disappear without extra bookkeeping.
    """

    def __init__(self, client=None, prefix: str = ROOM_AUTH_PREFIX):
        if client is None:
            from hirehub_backend.redis_cache import get_redis_client
            client = get_redis_client()
        self._client = client
        self._prefix = prefix

    def _key(self, room_id: str) -> str:
        return f"{self._prefix}{room_id}"

    def authorize(self, room_id: str, identity: str) -> None:
        self._client.sadd(self._key(room_id), identity)

    def revoke(self, room_id: str, identity: str) -> None:
        self._client.srem(self._key(room_id), identity)

    def is_authorized(self, room_id: str, identity: str) -> bool:
        return bool(self._client.sismember(self._key(room_id), identity))

    def list_authorized(self, room_id: str) -> Set[str]:
        return set(self._client.smembers(self._key(room_id)))

    def clear_room(self, room_id: str) -> None:
        self._client.delete(self._key(room_id))

    def rooms(self) -> List[str]:
        return [
            key[len(self._prefix):]
            for key in self._client.scan_iter(match=f"{self._prefix}*")
        ]


_room_store: Optional[RoomAuthorizationStore] = None
_room_store_lock = threading.Lock()


def _build_room_store() -> RoomAuthorizationStore:
    backend = settings.ROOM_STORE_BACKEND
    if backend == "redis":
        logger.info("Using Redis room authorization store")
        return RedisRoomAuthorizationStore()
    if backend != "memory":
        raise ValueError(f"Unknown ROOM_STORE_BACKEND: {backend}")
    logger.info("Using in-memory room authorization store")
    return InMemoryRoomAuthorizationStore()


def get_room_store() -> RoomAuthorizationStore:
    """Process-wide store selected by ROOM_STORE_BACKEND."""
    global _room_store
    if _room_store is None:
        with _room_store_lock:
            if _room_store is None:
                _room_store = _build_room_store()
    return _room_store


def set_room_store(store: Optional[RoomAuthorizationStore]) -> None:
    """Replace the process-wide store; None rebuilds it from settings on next use."""
    global _room_store
    with _room_store_lock:
        _room_store = store
