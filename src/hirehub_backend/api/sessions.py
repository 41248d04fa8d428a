"""Interview session API endpoints."""

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from hirehub_backend.business_logic import sessions as session_logic
from hirehub_backend.database import get_db
from hirehub_backend.permissions.auth import get_current_principal
from hirehub_backend.permissions.principal import Principal
from hirehub_backend.settings import settings
from hirehub_types.sessions import (
    EndAllPreview,
    EndAllResponse,
    SessionActionResponse,
    SessionCreate,
    SessionEnvelope,
    SessionGet,
    SessionListResponse,
)

session_router = APIRouter(prefix="/api/sessions", tags=["sessions"])

# IP-based limits for this router
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def _to_session_get(session) -> SessionGet:
    return SessionGet.model_validate(session, from_attributes=True)


@session_router.post("", response_model=SessionEnvelope, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SESSION_CREATE_RATE_LIMIT)
async def create_session(
    request: Request,
    payload: SessionCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create an interview session hosted by the caller."""
    session = session_logic.create_session(payload, principal, db)
    return SessionEnvelope(session=_to_session_get(session))


@session_router.get("/active", response_model=SessionListResponse)
async def list_active_sessions(db: Session = Depends(get_db)):
    """Active sessions, newest first. No authentication required."""
    sessions = session_logic.list_active_sessions(db)
    return SessionListResponse(sessions=[_to_session_get(s) for s in sessions])


@session_router.get("/my-recent", response_model=SessionListResponse)
async def list_my_recent_sessions(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Completed sessions the caller hosted or joined, newest first."""
    sessions = session_logic.list_my_recent_sessions(principal, db)
    return SessionListResponse(sessions=[_to_session_get(s) for s in sessions])


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@session_router.get("/preview/end-all", response_model=EndAllPreview)
async def preview_end_all(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Number of active sessions an end-all would complete."""
    return EndAllPreview(count=session_logic.preview_end_all(principal, db))


@session_router.post("/end-all", response_model=EndAllResponse)
async def end_all_sessions(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Complete every active session and close its room."""
    results = await session_logic.end_all_sessions(principal, db)
    return EndAllResponse(message=f"Processed {len(results)} sessions", results=results)


# ============================================================================
# PER-SESSION ENDPOINTS
# ============================================================================

@session_router.get("/{session_id}", response_model=SessionEnvelope)
async def get_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    session = session_logic.get_session(session_id, db)
    return SessionEnvelope(session=_to_session_get(session))


@session_router.post("/{session_id}/join", response_model=SessionEnvelope)
async def join_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Take the participant slot; 409 when someone else already holds it."""
    session = await session_logic.join_session(session_id, principal, db)
    return SessionEnvelope(session=_to_session_get(session))


@session_router.post("/{session_id}/leave", response_model=SessionActionResponse)
async def leave_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    session = await session_logic.leave_session(session_id, principal, db)
    return SessionActionResponse(session=_to_session_get(session), message="Left session")


@session_router.post("/{session_id}/end", response_model=SessionActionResponse)
async def end_session(
    session_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """End the session (host only). Open sockets in its room are closed."""
    session = await session_logic.end_session(session_id, principal, db)
    return SessionActionResponse(session=_to_session_get(session), message="Session ended")
