"""Business logic for interview session lifecycle.

A session moves active -> completed and never back. Every transition keeps
the room authorization store in step with the session row:

- create: host authorized for the room
- join: participant authorized
- leave: participant revoked
- end / end-all: room cleared and its open sockets closed

Join, leave and end on the same session are serialized by the per-session
locks in `locks.py`; the repository's conditional UPDATE additionally guards the
participant slot across worker processes.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hirehub_backend.business_logic.locks import session_locks
from hirehub_backend.exceptions import (
    AdminRequiredException,
    NoParticipantException,
    NotSessionHostException,
    NotSessionParticipantException,
    SelfJoinException,
    SessionAlreadyCompletedException,
    SessionCompletedException,
    SessionFullException,
    SessionNotFoundException,
)
from hirehub_backend.model.audit import AuditAction
from hirehub_backend.model.session import InterviewSession
from hirehub_backend.permissions.principal import Principal
from hirehub_backend.repositories.audit_repo import AuditLogRepository
from hirehub_backend.repositories.base import RepositoryError
from hirehub_backend.repositories.session_repo import SessionRepository
from hirehub_backend.repositories.user_repo import UserRepository
from hirehub_backend.settings import settings
from hirehub_backend.websocket.connection_manager import manager
from hirehub_backend.websocket.gateway import REASON_SESSION_ENDED
from hirehub_backend.websocket.room_store import RoomAuthorizationStore, get_room_store
from hirehub_types.sessions import EndAllResult, SessionCreate

logger = logging.getLogger(__name__)


def _get_session_or_404(repo: SessionRepository, session_id: str) -> InterviewSession:
    session = repo.get(session_id)
    if session is None:
        raise SessionNotFoundException(context={"session_id": session_id})
    return session


def create_session(
    payload: SessionCreate,
    principal: Principal,
    db: Session,
    store: Optional[RoomAuthorizationStore] = None,
) -> InterviewSession:
    """Create an active session hosted by the caller and authorize the host for its room."""
    store = store or get_room_store()

    host = UserRepository(db).get_by_id(principal.user_id)
    session = SessionRepository(db).create_session(host, payload.problem, payload.difficulty.value)

    store.authorize(session.room_id, principal.identity)

    logger.info(f"Session {session.id} created by {principal.identity} (room={session.room_id})")
    return session


def get_session(session_id: str, db: Session) -> InterviewSession:
    return _get_session_or_404(SessionRepository(db), session_id)


def list_active_sessions(db: Session) -> List[InterviewSession]:
    return SessionRepository(db).find_active(limit=settings.ACTIVE_SESSIONS_LIMIT)


def list_my_recent_sessions(principal: Principal, db: Session) -> List[InterviewSession]:
    return SessionRepository(db).find_recent_for_user(
        principal.user_id, limit=settings.RECENT_SESSIONS_LIMIT
    )


async def join_session(
    session_id: str,
    principal: Principal,
    db: Session,
    store: Optional[RoomAuthorizationStore] = None,
) -> InterviewSession:
    """
    Take the participant slot of an active session.

    Raises:
        SessionNotFoundException: Unknown session id
        SessionCompletedException: Session already completed
        SelfJoinException: Caller is the host
        SessionFullException: Slot already taken, including by a concurrent join
    """
    store = store or get_room_store()

    async with session_locks.hold(session_id):
        repo = SessionRepository(db)
        session = _get_session_or_404(repo, session_id)

        if not session.is_active:
            raise SessionCompletedException(user_id=principal.user_id)

        if session.host_id == principal.user_id:
            raise SelfJoinException(user_id=principal.user_id)

        if session.participant_id is not None:
            raise SessionFullException(user_id=principal.user_id)

        user = UserRepository(db).get_by_id(principal.user_id)
        if not repo.assign_participant(session, user):
            logger.info(f"Join of session {session_id} by {principal.identity} lost to a concurrent update")
            if not session.is_active:
                raise SessionCompletedException(user_id=principal.user_id)
            raise SessionFullException(user_id=principal.user_id)

        store.authorize(session.room_id, principal.identity)

    logger.info(f"{principal.identity} joined session {session_id}")
    return session


async def leave_session(
    session_id: str,
    principal: Principal,
    db: Session,
    store: Optional[RoomAuthorizationStore] = None,
) -> InterviewSession:
    """
    Give up the participant slot.

    Raises:
        SessionNotFoundException: Unknown session id
        NoParticipantException: Nobody holds the slot
        NotSessionParticipantException: Caller is not the participant
    """
    store = store or get_room_store()

    async with session_locks.hold(session_id):
        repo = SessionRepository(db)
        session = _get_session_or_404(repo, session_id)

        if session.participant_id is None:
            raise NoParticipantException(user_id=principal.user_id)

        if session.participant_id != principal.user_id:
            raise NotSessionParticipantException(user_id=principal.user_id)

        user = UserRepository(db).get_by_id(principal.user_id)
        if not repo.clear_participant(session, user):
            raise NoParticipantException(user_id=principal.user_id)

        store.revoke(session.room_id, principal.identity)

    logger.info(f"{principal.identity} left session {session_id}")
    return session


async def _close_room(room_id: str, store: RoomAuthorizationStore) -> None:
    try:
        store.clear_room(room_id)
    except Exception:
        logger.error(f"Failed to clear room authorizations for {room_id}", exc_info=True)

    await manager.close_room(room_id, REASON_SESSION_ENDED)


def _record_audit(db: Session, action: AuditAction, principal: Principal, details: dict) -> None:
    try:
        AuditLogRepository(db).record(action, principal.identity, details)
    except (RepositoryError, SQLAlchemyError):
        logger.error(f"Failed to record audit entry {action.value} by {principal.identity}", exc_info=True)


async def end_session(
    session_id: str,
    principal: Principal,
    db: Session,
    store: Optional[RoomAuthorizationStore] = None,
) -> InterviewSession:
    """
    Complete a session. Host only.

    The room's authorizations are dropped and any open sockets in it receive
    `session_ended` and are closed.

    Raises:
        SessionNotFoundException: Unknown session id
        NotSessionHostException: Caller is not the host
        SessionAlreadyCompletedException: Session already completed
    """
    store = store or get_room_store()

    async with session_locks.hold(session_id):
        repo = SessionRepository(db)
        session = _get_session_or_404(repo, session_id)

        if session.host_id != principal.user_id:
            raise NotSessionHostException(user_id=principal.user_id)

        if not session.is_active:
            raise SessionAlreadyCompletedException(user_id=principal.user_id)

        if not repo.complete(session):
            raise SessionAlreadyCompletedException(user_id=principal.user_id)

        await _close_room(session.room_id, store)

    _record_audit(db, AuditAction.END_SESSION, principal, {
        "session_id": session.id,
        "room_id": session.room_id,
    })

    logger.info(f"Session {session_id} ended by {principal.identity}")
    return session


def _require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        logger.warning(f"Admin-only session operation denied for {principal.identity}")
        raise AdminRequiredException(user_id=principal.user_id)


def preview_end_all(principal: Principal, db: Session) -> int:
    """Number of sessions end-all would complete. Admin only."""
    _require_admin(principal)
    return SessionRepository(db).count_active()


async def end_all_sessions(
    principal: Principal,
    db: Session,
    store: Optional[RoomAuthorizationStore] = None,
) -> List[EndAllResult]:
    """
    Complete every active session. Admin only.

    Each session is processed independently; one failure is reported in its
    result entry and does not stop the others.
    """
    _require_admin(principal)
    store = store or get_room_store()

    repo = SessionRepository(db)
    results: List[EndAllResult] = []

    for session in repo.find_active():
        session_id = session.id
        try:
            async with session_locks.hold(session_id):
                completed = repo.complete(session)
                if completed:
                    await _close_room(session.room_id, store)

            if completed:
                results.append(EndAllResult(session_id=session_id, ok=True))
            else:
                results.append(EndAllResult(session_id=session_id, ok=False, error="Already completed"))

        except Exception as e:
            repo.rollback()
            logger.error(f"Failed to end session {session_id}", exc_info=True)
            results.append(EndAllResult(session_id=session_id, ok=False, error=str(e)))

    _record_audit(db, AuditAction.END_ALL_SESSIONS, principal, {
        "count": len(results),
        "results": [r.model_dump(by_alias=True, exclude_none=True) for r in results],
    })

    logger.info(f"End-all by {principal.identity}: processed {len(results)} sessions")
    return results
