"""
Connection gateway: decides whether a socket may join a room.

Admission is two-tier:

1. The room authorization store (fast path, no I/O for the memory backend).
2. On a miss, the session that owns the room is loaded and the identity is
   checked against its host and participant. A match is written back to the
   store so the next connection takes the fast path. The write-back happens
   under the session's lock after re-reading it, so a session ended or left
   during the lookup is never re-authorized.

Any failure while loading the session denies admission.
"""

import logging
from typing import Optional, Set, Tuple

from fastapi.concurrency import run_in_threadpool

from hirehub_backend.business_logic.locks import session_locks
from hirehub_backend.database import get_db
from hirehub_backend.repositories.session_repo import SessionRepository
from hirehub_backend.websocket.room_store import RoomAuthorizationStore, get_room_store
from hirehub_types.sessions import SessionStatus

logger = logging.getLogger(__name__)

REASON_MISSING = "missing_room_or_identity"
REASON_NOT_ALLOWED = "not_allowed"
REASON_SESSION_ENDED = "session_ended"

# RFC 6455 policy violation
POLICY_VIOLATION = 1008


class RoomAccessDenied(Exception):
    """Raised when a socket may not join the requested room."""

    def __init__(self, reason: str, code: int = POLICY_VIOLATION):
        self.reason = reason
        self.code = code
        super().__init__(reason)


def _load_room_members(room_id: str) -> Optional[Tuple[str, str, Set[str]]]:
    """(session id, status, member identities) of the session owning `room_id`, or None."""
    with next(get_db()) as db:
        session = SessionRepository(db).find_by_room_id(room_id)
        if session is None:
            return None
        return session.id, session.status, session.member_identities()


def _load_session_members(session_id: str) -> Optional[Tuple[str, Set[str]]]:
    with next(get_db()) as db:
        session = SessionRepository(db).get(session_id)
        if session is None:
            return None
        return session.status, session.member_identities()


async def admit(
    room_id: Optional[str],
    identity: Optional[str],
    store: Optional[RoomAuthorizationStore] = None,
) -> None:
    """
    Admit `identity` to `room_id` or raise RoomAccessDenied.

    Session lookup errors are logged and turned into a denial.
    """
    if not room_id or not identity:
        logger.warning(f"WebSocket rejected: room={room_id!r} identity={identity!r} missing")
        raise RoomAccessDenied(REASON_MISSING)

    store = store or get_room_store()

    if store.is_authorized(room_id, identity):
        return

    try:
        snapshot = await run_in_threadpool(_load_room_members, room_id)
    except Exception:
        logger.error(f"Room lookup failed for room={room_id} identity={identity}", exc_info=True)
        raise RoomAccessDenied(REASON_NOT_ALLOWED)

    if snapshot is None:
        logger.warning(f"WebSocket rejected: no session for room={room_id} identity={identity}")
        raise RoomAccessDenied(REASON_NOT_ALLOWED)

    session_id, status, members = snapshot

    if status != SessionStatus.ACTIVE.value:
        logger.warning(f"WebSocket rejected: session for room={room_id} is {status}, identity={identity}")
        raise RoomAccessDenied(REASON_NOT_ALLOWED)

    if identity not in members:
        logger.warning(f"WebSocket rejected: identity={identity} is not a member of room={room_id}")
        raise RoomAccessDenied(REASON_NOT_ALLOWED)

    async with session_locks.hold(session_id):
        try:
            current = await run_in_threadpool(_load_session_members, session_id)
        except Exception:
            logger.error(f"Session status re-check failed for room={room_id} identity={identity}", exc_info=True)
            raise RoomAccessDenied(REASON_NOT_ALLOWED)

        if current is None or current[0] != SessionStatus.ACTIVE.value or identity not in current[1]:
            logger.warning(f"WebSocket rejected: session for room={room_id} changed during admission, identity={identity}")
            raise RoomAccessDenied(REASON_NOT_ALLOWED)

        store.authorize(room_id, identity)

    logger.info(f"Room authorization restored from session: room={room_id} identity={identity}")
