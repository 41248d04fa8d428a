"""
Room event relay.

Handles events from admitted connections and fans them out to the room:

- message: trimmed text to the whole room, sender included; blank text is dropped
- code_change, typing: to everyone in the room except the sender
- admission and disconnect presence events
"""

import logging
import time
from typing import Optional

from hirehub_backend.websocket.connection_manager import Connection, manager
from hirehub_backend.websocket.room_store import RoomAuthorizationStore, get_room_store
from hirehub_types.websocket import (
    parse_client_event,
    WSChatMessageSend,
    WSCodeChangeSend,
    WSTypingSend,
    WSConnected,
    WSUserJoined,
    WSUserLeft,
    WSChatMessage,
    WSCodeChange,
    WSTyping,
    WSError,
)

logger = logging.getLogger(__name__)

REASON_INVALID_EVENT = "invalid_event"
REASON_INVALID_JSON = "invalid_json"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


async def on_connected(connection: Connection):
    """Confirm admission to the caller, then announce them to the room."""
    await manager.send_to_connection(connection, WSConnected(
        room=connection.room_id,
        identity=connection.identity,
    ))
    await manager.broadcast(connection.room_id, WSUserJoined(
        identity=connection.identity,
        timestamp=now_ms(),
    ))


async def handle_client_message(connection: Connection, raw_data):
    """
    Handle an incoming message from a WebSocket client.

    Parses the event and dispatches to the appropriate handler. Invalid
    events get an error reply; the connection stays open.
    """
    event = parse_client_event(raw_data)

    if event is None:
        event_type = raw_data.get("type", "missing") if isinstance(raw_data, dict) else "missing"
        logger.debug(f"Invalid event {event_type!r} from identity={connection.identity} room={connection.room_id}")
        await send_error(connection, REASON_INVALID_EVENT)
        return

    if isinstance(event, WSChatMessageSend):
        await handle_chat_message(connection, event)

    elif isinstance(event, WSCodeChangeSend):
        await handle_code_change(connection, event)

    elif isinstance(event, WSTypingSend):
        await handle_typing(connection, event)


async def handle_chat_message(connection: Connection, event: WSChatMessageSend):
    text = (event.text or "").strip()
    if not text:
        return

    await manager.broadcast(connection.room_id, WSChatMessage(
        identity=connection.identity,
        text=text,
        timestamp=now_ms(),
    ))


async def handle_code_change(connection: Connection, event: WSCodeChangeSend):
    await manager.broadcast(
        connection.room_id,
        WSCodeChange(identity=connection.identity, code=event.code, language=event.language),
        exclude=connection,
    )


async def handle_typing(connection: Connection, event: WSTypingSend):
    await manager.broadcast(
        connection.room_id,
        WSTyping(identity=connection.identity, is_typing=event.is_typing),
        exclude=connection,
    )


async def send_error(connection: Connection, reason: str):
    await manager.send_to_connection(connection, WSError(reason=reason))


async def on_disconnect(connection: Connection, store: Optional[RoomAuthorizationStore] = None):
    """
    Clean up after a closed socket.

    Runs its effects at most once per connection: a connection already
    removed (for example by close_room when its session ended) is skipped.
    """
    if not await manager.disconnect(connection):
        return

    store = store or get_room_store()
    store.revoke(connection.room_id, connection.identity)

    await manager.broadcast(connection.room_id, WSUserLeft(
        identity=connection.identity,
        timestamp=now_ms(),
    ))
