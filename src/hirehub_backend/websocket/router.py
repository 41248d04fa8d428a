"""
WebSocket router and endpoint.

Provides the real-time room endpoint used by interview participants.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query

from hirehub_backend.websocket.connection_manager import manager, ws_metrics, ConnectionLimitError
from hirehub_backend.websocket.gateway import admit, RoomAccessDenied, REASON_NOT_ALLOWED
from hirehub_backend.websocket.handlers import (
    handle_client_message,
    on_connected,
    on_disconnect,
    send_error,
    REASON_INVALID_JSON,
)
from hirehub_backend.websocket.room_store import get_room_store
from hirehub_types.websocket import WSError, dump_event

logger = logging.getLogger(__name__)

ws_router = APIRouter()


async def _reject(websocket: WebSocket, reason: str, code: int):
    """Accept the socket, send the error event, then close it."""
    ws_metrics.connection_rejected()
    try:
        await websocket.accept()
        await websocket.send_json(dump_event(WSError(reason=reason)))
        await websocket.close(code=code, reason=reason)
    except Exception as e:
        logger.debug(f"WebSocket reject ({reason}) could not be delivered: {e}")


@ws_router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    room: Optional[str] = Query(None, description="Room id of the interview session"),
    identity: Optional[str] = Query(None, description="External identity of the connecting user"),
):
    """
    Real-time room endpoint.

    Example: ws://localhost:8000/ws?room=session_1700000000000_ab12cd34&identity=user_abc

    Connection Flow:
        1. Client connects with room and identity
        2. Server checks the room authorization (store, then session fallback)
        3. Server sends `connected` to the client and `user_joined` to the room
        4. Client/server exchange events until either side closes
        5. Server revokes the identity for the room and sends `user_left`

    Client -> Server Events:
        - message: {"type": "message", "text": "hi"}
        - code_change: {"type": "code_change", "code": "...", "language": "python"}
        - typing: {"type": "typing", "isTyping": true}

    Server -> Client Events:
        - connected, user_joined, user_left, message, code_change, typing, error

    Rejections are delivered as an `error` event followed by close code 1008.
    """
    connection = None

    try:
        await admit(room, identity)

        connection = await manager.connect(websocket, room, identity)

        # The room may have been cleared while the socket was being accepted
        if not get_room_store().is_authorized(room, identity):
            logger.warning(f"WebSocket rejected after accept: room={room} identity={identity} no longer authorized")
            ws_metrics.connection_rejected()
            await manager.close_connection(connection, REASON_NOT_ALLOWED)
            return

        await on_connected(connection)

        while True:
            message = await websocket.receive()

            if message["type"] == "websocket.receive":
                # Binary frames are not part of the protocol
                if message.get("text") is None:
                    continue

                ws_metrics.message_received()
                try:
                    data = json.loads(message["text"])
                except json.JSONDecodeError as e:
                    logger.warning(f"WebSocket invalid JSON from identity={identity} room={room}: {e}")
                    await send_error(connection, REASON_INVALID_JSON)
                    continue

                await handle_client_message(connection, data)

            elif message["type"] == "websocket.disconnect":
                break

    except WebSocketDisconnect:
        pass

    except RoomAccessDenied as e:
        await _reject(websocket, e.reason, e.code)

    except ConnectionLimitError as e:
        logger.warning(f"WebSocket connection limit: {e.message}")
        await _reject(websocket, e.reason, e.code)

    except Exception as e:
        logger.error(f"WebSocket error in room={room} identity={identity}: {e}", exc_info=True)
        try:
            await websocket.close(code=1011, reason="Internal error")
        except Exception as close_error:
            logger.debug(f"WebSocket close after error failed: {close_error}")

    finally:
        if connection:
            await on_disconnect(connection)
