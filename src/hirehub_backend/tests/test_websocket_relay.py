"""End-to-end tests for the interview room WebSocket."""

import pytest
from starlette.websockets import WebSocketDisconnect

from hirehub_backend.tests.conftest import auth_headers
from hirehub_backend.websocket.connection_manager import manager, ws_metrics
from hirehub_backend.websocket.room_store import InMemoryRoomAuthorizationStore, set_room_store


def ws_url(room: str, identity: str) -> str:
    return f"/ws?room={room}&identity={identity}"


def connect_and_drain(ws, room: str, identity: str):
    """Consume the admission frames every new socket receives."""
    connected = ws.receive_json()
    assert connected == {"type": "connected", "room": room, "identity": identity}
    joined = ws.receive_json()
    assert joined["type"] == "user_joined"
    assert joined["identity"] == identity


def assert_rejected(ws, reason: str):
    assert ws.receive_json() == {"type": "error", "reason": reason}
    with pytest.raises(WebSocketDisconnect) as exc_info:
        ws.receive_json()
    assert exc_info.value.code == 1008


class TestAdmission:

    def test_host_connects_after_create(self, test_client, create_session):
        session = create_session("host_1")
        room = session["roomId"]

        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            assert ws.receive_json() == {"type": "connected", "room": room, "identity": "host_1"}
            joined = ws.receive_json()
            assert joined["type"] == "user_joined"
            assert joined["identity"] == "host_1"
            assert isinstance(joined["timestamp"], int)

    def test_participant_join_is_announced_to_host(self, test_client, create_session):
        session = create_session("host_1")
        room = session["roomId"]

        response = test_client.post(f"/api/sessions/{session['id']}/join", headers=auth_headers("candidate_1"))
        assert response.status_code == 200

        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")

            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")

                seen_by_host = host_ws.receive_json()
                assert seen_by_host["type"] == "user_joined"
                assert seen_by_host["identity"] == "candidate_1"

    @pytest.mark.parametrize("url", ["/ws", "/ws?room=session_1", "/ws?identity=host_1", "/ws?room=&identity="])
    def test_missing_handshake_parameters(self, test_client, url):
        with test_client.websocket_connect(url) as ws:
            assert_rejected(ws, "missing_room_or_identity")

    def test_unknown_room_rejected(self, test_client):
        with test_client.websocket_connect(ws_url("session_0_missing", "host_1")) as ws:
            assert_rejected(ws, "not_allowed")

    def test_stranger_rejected(self, test_client, create_session):
        session = create_session("host_1")
        with test_client.websocket_connect(ws_url(session["roomId"], "stranger")) as ws:
            assert_rejected(ws, "not_allowed")
        assert ws_metrics.total_rejections == 1

    def test_host_readmitted_after_store_loss(self, test_client, create_session):
        session = create_session("host_1")
        room = session["roomId"]

        # Simulates a restart: the store forgets everything, the database does not
        fresh_store = InMemoryRoomAuthorizationStore()
        set_room_store(fresh_store)

        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            connect_and_drain(ws, room, "host_1")
            assert fresh_store.is_authorized(room, "host_1")

    def test_left_participant_rejected(self, test_client, create_session, room_store):
        session = create_session("host_1")
        room = session["roomId"]
        test_client.post(f"/api/sessions/{session['id']}/join", headers=auth_headers("candidate_1"))

        response = test_client.post(f"/api/sessions/{session['id']}/leave", headers=auth_headers("candidate_1"))
        assert response.status_code == 200
        assert not room_store.is_authorized(room, "candidate_1")

        with test_client.websocket_connect(ws_url(room, "candidate_1")) as ws:
            assert_rejected(ws, "not_allowed")

    def test_connection_limit(self, test_client, create_session, test_settings, monkeypatch):
        session = create_session("host_1")
        monkeypatch.setattr(test_settings, "WS_MAX_TOTAL_CONNECTIONS", 0)

        with test_client.websocket_connect(ws_url(session["roomId"], "host_1")) as ws:
            assert_rejected(ws, "connection_limit")
        assert ws_metrics.total_connection_limit_hits == 1

    def test_room_cleared_during_accept_is_rejected(self, test_client, create_session, room_store, monkeypatch):
        from hirehub_backend.websocket import gateway

        session = create_session("host_1")
        room = session["roomId"]

        async def admit_then_end(room_id, identity, store=None):
            await gateway.admit(room_id, identity, store)
            # The session ends between admission and joining the room group
            room_store.clear_room(room_id)

        monkeypatch.setattr("hirehub_backend.websocket.router.admit", admit_then_end)

        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            assert_rejected(ws, "not_allowed")

        assert manager.get_connection_count() == 0
        assert ws_metrics.total_rejections == 1
        assert room_store.list_authorized(room) == set()


class TestRelay:

    @pytest.fixture
    def room(self, test_client, create_session):
        session = create_session("host_1")
        test_client.post(f"/api/sessions/{session['id']}/join", headers=auth_headers("candidate_1"))
        return session["roomId"]

    def test_message_is_trimmed_and_echoed_to_everyone(self, test_client, room):
        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")
            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")
                host_ws.receive_json()  # user_joined candidate_1

                candidate_ws.send_json({"type": "message", "text": "  hello there  "})

                for ws in (candidate_ws, host_ws):
                    event = ws.receive_json()
                    assert event["type"] == "message"
                    assert event["identity"] == "candidate_1"
                    assert event["text"] == "hello there"
                    assert isinstance(event["timestamp"], int)

    def test_blank_message_is_dropped(self, test_client, room):
        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")
            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")
                host_ws.receive_json()  # user_joined candidate_1

                candidate_ws.send_json({"type": "message", "text": "   "})
                candidate_ws.send_json({"type": "message"})
                candidate_ws.send_json({"type": "message", "text": "marker"})

                # The first frame either socket sees is the marker, not a blank message
                assert candidate_ws.receive_json()["text"] == "marker"
                assert host_ws.receive_json()["text"] == "marker"

    def test_code_change_goes_to_others_only(self, test_client, room):
        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")
            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")
                host_ws.receive_json()  # user_joined candidate_1

                candidate_ws.send_json({"type": "code_change", "code": "print(1)", "language": "python"})
                candidate_ws.send_json({"type": "message", "text": "done"})

                # The sender got no echo: its next frame is its own chat message
                assert candidate_ws.receive_json()["text"] == "done"

                assert host_ws.receive_json() == {
                    "type": "code_change",
                    "identity": "candidate_1",
                    "code": "print(1)",
                    "language": "python",
                }
                assert host_ws.receive_json()["text"] == "done"

    def test_typing_goes_to_others_only(self, test_client, room):
        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")
            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")
                host_ws.receive_json()  # user_joined candidate_1

                host_ws.send_json({"type": "typing", "isTyping": True})
                host_ws.send_json({"type": "message", "text": "ping"})

                assert host_ws.receive_json()["text"] == "ping"

                assert candidate_ws.receive_json() == {"type": "typing", "identity": "host_1", "isTyping": True}
                assert candidate_ws.receive_json()["text"] == "ping"

    def test_invalid_event_keeps_connection_open(self, test_client, room):
        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            connect_and_drain(ws, room, "host_1")

            ws.send_json({"type": "dance"})
            assert ws.receive_json() == {"type": "error", "reason": "invalid_event"}

            ws.send_json({"type": "code_change", "code": "x"})
            assert ws.receive_json() == {"type": "error", "reason": "invalid_event"}

            ws.send_json(["not", "an", "object"])
            assert ws.receive_json() == {"type": "error", "reason": "invalid_event"}

            ws.send_text("{not json")
            assert ws.receive_json() == {"type": "error", "reason": "invalid_json"}

            ws.send_json({"type": "message", "text": "still here"})
            assert ws.receive_json()["text"] == "still here"

    def test_disconnect_revokes_and_announces(self, test_client, room, room_store):
        with test_client.websocket_connect(ws_url(room, "host_1")) as host_ws:
            connect_and_drain(host_ws, room, "host_1")
            with test_client.websocket_connect(ws_url(room, "candidate_1")) as candidate_ws:
                connect_and_drain(candidate_ws, room, "candidate_1")
                host_ws.receive_json()  # user_joined candidate_1

            left = host_ws.receive_json()
            assert left["type"] == "user_left"
            assert left["identity"] == "candidate_1"
            assert isinstance(left["timestamp"], int)
            assert not room_store.is_authorized(room, "candidate_1")
            assert room_store.is_authorized(room, "host_1")
            assert len(manager.get_room_connections(room)) == 1

        assert manager.get_connection_count() == 0
        assert room_store.list_authorized(room) == set()

    def test_participant_reconnects_after_disconnect(self, test_client, room, room_store):
        with test_client.websocket_connect(ws_url(room, "candidate_1")) as ws:
            connect_and_drain(ws, room, "candidate_1")
        assert not room_store.is_authorized(room, "candidate_1")

        # Still the participant in the database, so the fallback readmits
        with test_client.websocket_connect(ws_url(room, "candidate_1")) as ws:
            connect_and_drain(ws, room, "candidate_1")
            assert room_store.is_authorized(room, "candidate_1")


class TestSessionEndClosesRoom:

    def test_end_closes_open_sockets(self, test_client, create_session, room_store):
        session = create_session("host_1")
        room = session["roomId"]

        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            connect_and_drain(ws, room, "host_1")

            response = test_client.post(f"/api/sessions/{session['id']}/end", headers=auth_headers("host_1"))
            assert response.status_code == 200

            assert_rejected(ws, "session_ended")

        assert room_store.list_authorized(room) == set()
        assert manager.get_connection_count() == 0

        with test_client.websocket_connect(ws_url(room, "host_1")) as ws:
            assert_rejected(ws, "not_allowed")
