"""Pytest configuration and fixtures for hirehub_backend tests."""

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from hirehub_backend import database
from hirehub_backend.api.sessions import limiter
from hirehub_backend.business_logic.locks import session_locks
from hirehub_backend.model.auth import User
from hirehub_backend.permissions.auth import set_identity_verifier
from hirehub_backend.permissions.principal import Principal
from hirehub_backend.settings import settings
from hirehub_backend.websocket.connection_manager import manager, ws_metrics
from hirehub_backend.websocket.room_store import InMemoryRoomAuthorizationStore, set_room_store

GATEWAY_SECRET = "test-gateway-secret"
ADMIN_IDENTITY = "admin_1"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests against in-memory SQLite and the in-memory room store")


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings for every test."""
    monkeypatch.setattr(settings, "DEBUG_MODE", "test")
    monkeypatch.setattr(settings, "DISABLE_AUTH", False)
    monkeypatch.setattr(settings, "GATEWAY_SHARED_SECRET", GATEWAY_SECRET)
    monkeypatch.setattr(settings, "ADMIN_IDENTITIES", [ADMIN_IDENTITY])
    monkeypatch.setattr(settings, "ROOM_STORE_BACKEND", "memory")
    monkeypatch.setattr(limiter, "enabled", False)
    set_identity_verifier(None)
    yield settings
    set_identity_verifier(None)


@pytest.fixture(autouse=True)
def db_engine():
    """Fresh in-memory SQLite database per test."""
    engine = database.configure_engine("sqlite://")
    database.create_schema()
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def room_store():
    """Fresh in-memory room authorization store per test."""
    store = InMemoryRoomAuthorizationStore()
    set_room_store(store)
    yield store
    set_room_store(None)


@pytest.fixture(autouse=True)
def reset_realtime_state():
    manager.reset()
    ws_metrics.reset()
    session_locks.reset()
    yield
    manager.reset()
    session_locks.reset()


# ============================================================================
# Database and client
# ============================================================================


@pytest.fixture
def db(db_engine):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_client() -> TestClient:
    # Used without the context manager, so the lifespan never runs; db_engine owns the schema
    from hirehub_backend.server import app
    return TestClient(app)


def auth_headers(identity: str) -> Dict[str, str]:
    """Headers the auth gateway would forward for `identity`."""
    return {
        "Authorization": f"Bearer {GATEWAY_SECRET}",
        "X-User-Identity": identity,
    }


def create_user(db, identity: str, is_admin: bool = False) -> User:
    user = User(
        identity=identity,
        name=identity.title(),
        email=f"{identity}@example.com",
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def principal_for(user: User, is_admin: bool = False) -> Principal:
    return Principal(user_id=user.id, identity=user.identity, is_admin=is_admin or user.is_admin)


@pytest.fixture
def create_session(test_client):
    """Create a session over HTTP and return its JSON."""

    def _create(host_identity: str = "host_1", problem: str = "Two Sum", difficulty: str = "easy") -> dict:
        response = test_client.post(
            "/api/sessions",
            json={"problem": problem, "difficulty": difficulty},
            headers=auth_headers(host_identity),
        )
        assert response.status_code == 201, response.text
        return response.json()["session"]

    return _create
