"""Tests for the admin end-all operation."""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from hirehub_backend.model.audit import AuditAction
from hirehub_backend.repositories.audit_repo import AuditLogRepository
from hirehub_backend.repositories.session_repo import SessionRepository
from hirehub_backend.tests.conftest import ADMIN_IDENTITY, auth_headers, create_user
from hirehub_backend.websocket.room_store import InMemoryRoomAuthorizationStore, set_room_store


class UnreachableStore(InMemoryRoomAuthorizationStore):
    def clear_room(self, room_id):
        raise ConnectionError("store unreachable")


@pytest.mark.unit
class TestEndAllSessions:

    def test_requires_admin(self, test_client, create_session):
        create_session("host_1")

        response = test_client.post("/api/sessions/end-all", headers=auth_headers("host_1"))

        assert response.status_code == 403
        assert response.json() == {"error_code": "AUTHZ_002", "message": "Admin only"}

        active = test_client.get("/api/sessions/active").json()["sessions"]
        assert len(active) == 1

    def test_preview_requires_admin(self, test_client):
        response = test_client.get("/api/sessions/preview/end-all", headers=auth_headers("host_1"))
        assert response.status_code == 403

    def test_preview_counts_active_sessions(self, test_client, create_session):
        create_session("host_1")
        create_session("host_2")
        ended = create_session("host_3")
        test_client.post(f"/api/sessions/{ended['id']}/end", headers=auth_headers("host_3"))

        response = test_client.get("/api/sessions/preview/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        assert response.json() == {"count": 2}

    def test_ends_every_active_session(self, test_client, create_session, room_store):
        first = create_session("host_1")
        second = create_session("host_2")
        test_client.post(f"/api/sessions/{second['id']}/join", headers=auth_headers("candidate_1"))

        response = test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Processed 2 sessions"
        assert {r["sessionId"] for r in body["results"]} == {first["id"], second["id"]}
        assert all(r["ok"] is True for r in body["results"])

        assert test_client.get("/api/sessions/active").json()["sessions"] == []
        assert room_store.rooms() == []

    def test_nothing_to_end(self, test_client):
        response = test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        assert response.json() == {"message": "Processed 0 sessions", "results": []}

    def test_admin_flag_on_user_row(self, test_client, create_session, db):
        create_user(db, "ops_lead", is_admin=True)
        create_session("host_1")

        response = test_client.post("/api/sessions/end-all", headers=auth_headers("ops_lead"))

        assert response.status_code == 200
        assert len(response.json()["results"]) == 1

    def test_failure_is_reported_per_session(self, test_client, create_session, monkeypatch):
        broken = create_session("host_1")
        healthy = create_session("host_2")

        original_complete = SessionRepository.complete

        def flaky_complete(self, session):
            if session.id == broken["id"]:
                raise SQLAlchemyError("write failed")
            return original_complete(self, session)

        monkeypatch.setattr(SessionRepository, "complete", flaky_complete)

        response = test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        results = {r["sessionId"]: r for r in response.json()["results"]}
        assert results[healthy["id"]]["ok"] is True
        assert results[broken["id"]]["ok"] is False
        assert results[broken["id"]]["error"] == "write failed"

        active = test_client.get("/api/sessions/active").json()["sessions"]
        assert [s["id"] for s in active] == [broken["id"]]

    def test_unexpected_error_is_reported_per_session(self, test_client, create_session, monkeypatch):
        broken = create_session("host_1")
        healthy = create_session("host_2")

        original_complete = SessionRepository.complete

        def flaky_complete(self, session):
            if session.id == broken["id"]:
                raise RuntimeError("lost connection")
            return original_complete(self, session)

        monkeypatch.setattr(SessionRepository, "complete", flaky_complete)

        response = test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        results = {r["sessionId"]: r for r in response.json()["results"]}
        assert results[healthy["id"]]["ok"] is True
        assert results[broken["id"]] == {"sessionId": broken["id"], "ok": False, "error": "lost connection"}

    def test_unreachable_room_store_does_not_abort_batch(self, test_client, create_session, db):
        sessions = [create_session(f"host_{i}") for i in range(3)]
        set_room_store(UnreachableStore())

        response = test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        assert response.status_code == 200
        results = response.json()["results"]
        assert {r["sessionId"] for r in results} == {s["id"] for s in sessions}
        assert all(r["ok"] is True for r in results)
        assert test_client.get("/api/sessions/active").json()["sessions"] == []

        entries = AuditLogRepository(db).find_by_action(AuditAction.END_ALL_SESSIONS)
        assert entries[0].details["count"] == 3

    def test_is_audited(self, test_client, create_session, db):
        session = create_session("host_1")

        test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

        entries = AuditLogRepository(db).find_by_action(AuditAction.END_ALL_SESSIONS)
        assert len(entries) == 1
        assert entries[0].performed_by == ADMIN_IDENTITY
        assert entries[0].details["count"] == 1
        assert entries[0].details["results"] == [{"sessionId": session["id"], "ok": True}]

    def test_closes_open_sockets(self, test_client, create_session):
        from starlette.websockets import WebSocketDisconnect

        session = create_session("host_1")
        room = session["roomId"]

        with test_client.websocket_connect(f"/ws?room={room}&identity=host_1") as ws:
            ws.receive_json()  # connected
            ws.receive_json()  # user_joined

            test_client.post("/api/sessions/end-all", headers=auth_headers(ADMIN_IDENTITY))

            assert ws.receive_json() == {"type": "error", "reason": "session_ended"}
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()
            assert exc_info.value.code == 1008
