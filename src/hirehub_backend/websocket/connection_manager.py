"""
WebSocket connection manager.

Owns the broadcast groups: every admitted socket is in exactly one room
group for as long as it is connected. Sends are concurrent, bounded by
WS_SEND_TIMEOUT, and a failing socket never breaks a broadcast.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import uuid4

from fastapi import WebSocket

from hirehub_backend.settings import settings
from hirehub_backend.websocket.gateway import POLICY_VIOLATION
from hirehub_types.websocket import WSError, WSEventBase, dump_event

logger = logging.getLogger(__name__)


class WebSocketMetrics:
    """
    Simple metrics tracking for WebSocket connections.

    Tracks connection counts, message counts, and error rates.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.total_connections = 0
        self.total_disconnections = 0
        self.total_messages_sent = 0
        self.total_messages_received = 0
        self.total_send_errors = 0
        self.total_send_timeouts = 0
        self.total_connection_limit_hits = 0
        self.total_rejections = 0

    def connection_opened(self):
        self.total_connections += 1

    def connection_closed(self):
        self.total_disconnections += 1

    def message_sent(self):
        self.total_messages_sent += 1

    def message_received(self):
        self.total_messages_received += 1

    def send_error(self):
        self.total_send_errors += 1

    def send_timeout(self):
        self.total_send_timeouts += 1

    def connection_limit_hit(self):
        self.total_connection_limit_hits += 1

    def connection_rejected(self):
        self.total_rejections += 1

    def get_metrics(self) -> dict:
        """Get all metrics as a dictionary."""
        return {
            "total_connections": self.total_connections,
            "total_disconnections": self.total_disconnections,
            "active_connections": self.total_connections - self.total_disconnections,
            "total_messages_sent": self.total_messages_sent,
            "total_messages_received": self.total_messages_received,
            "total_send_errors": self.total_send_errors,
            "total_send_timeouts": self.total_send_timeouts,
            "total_connection_limit_hits": self.total_connection_limit_hits,
            "total_rejections": self.total_rejections,
            "error_rate": (
                self.total_send_errors / max(self.total_messages_sent, 1)
            ) if self.total_messages_sent > 0 else 0.0
        }


# Global metrics instance
ws_metrics = WebSocketMetrics()


class ConnectionLimitError(Exception):
    """Raised when connection limits are exceeded."""

    reason = "connection_limit"

    def __init__(self, message: str, code: int = POLICY_VIOLATION):
        self.message = message
        self.code = code
        super().__init__(message)


@dataclass(eq=False)
class Connection:
    """One admitted socket, bound to a single (room, identity) pair for its lifetime."""
    websocket: WebSocket
    room_id: str
    identity: str
    connection_id: str = field(default_factory=lambda: uuid4().hex)


class RoomConnectionManager:
    """
    Tracks room groups (room_id -> connections) and routes events to them.
    """

    def __init__(self):
        self._rooms: Dict[str, List[Connection]] = {}

    async def connect(self, websocket: WebSocket, room_id: str, identity: str) -> Connection:
        """
        Accept an admitted socket and add it to its room group.

        Raises:
            ConnectionLimitError: If the server-wide connection limit is reached
        """
        total_connections = self.get_connection_count()
        if total_connections >= settings.WS_MAX_TOTAL_CONNECTIONS:
            logger.warning(f"Total connection limit reached: {total_connections}/{settings.WS_MAX_TOTAL_CONNECTIONS}")
            ws_metrics.connection_limit_hit()
            raise ConnectionLimitError("Server connection limit reached")

        await websocket.accept()

        connection = Connection(websocket=websocket, room_id=room_id, identity=identity)
        self.join(connection)

        ws_metrics.connection_opened()
        logger.info(
            f"WebSocket connected: room={room_id} identity={identity}, "
            f"room_connections={len(self._rooms.get(room_id, []))}, total={self.get_connection_count()}"
        )
        return connection

    def join(self, connection: Connection) -> None:
        self._rooms.setdefault(connection.room_id, []).append(connection)

    def leave(self, connection: Connection) -> bool:
        """
        Remove a connection from its room group.

        Returns:
            True if the connection was a member, False if it was already gone
        """
        members = self._rooms.get(connection.room_id)
        if not members or connection not in members:
            return False

        members.remove(connection)
        if not members:
            del self._rooms[connection.room_id]
        return True

    async def disconnect(self, connection: Connection) -> bool:
        """Leave the room group; True only the first time for a given connection."""
        removed = self.leave(connection)
        if removed:
            ws_metrics.connection_closed()
            logger.info(f"WebSocket disconnected: room={connection.room_id} identity={connection.identity}")
        return removed

    async def _send_with_timeout(self, conn: Connection, data: dict) -> bool:
        """
        Send data to a connection with timeout.

        Returns:
            True if successful, False otherwise
        """
        try:
            await asyncio.wait_for(
                conn.websocket.send_json(data),
                timeout=settings.WS_SEND_TIMEOUT
            )
            ws_metrics.message_sent()
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Send timeout to identity={conn.identity} room={conn.room_id}")
            ws_metrics.send_timeout()
            return False
        except Exception as e:
            logger.error(f"Failed to send to identity={conn.identity} room={conn.room_id}: {e}")
            ws_metrics.send_error()
            return False

    async def send_to_connection(self, connection: Connection, event: WSEventBase) -> bool:
        return await self._send_with_timeout(connection, dump_event(event))

    async def broadcast(
        self,
        room_id: str,
        event: WSEventBase,
        exclude: Optional[Connection] = None,
    ) -> int:
        """
        Send an event to every connection in a room, optionally skipping one.

        Returns:
            Number of successful sends
        """
        # Copy: members may leave while sends are in flight
        targets = [c for c in self._rooms.get(room_id, []) if c is not exclude]
        if not targets:
            return 0

        data = dump_event(event)
        results = await asyncio.gather(
            *(self._send_with_timeout(conn, data) for conn in targets),
            return_exceptions=True,
        )
        success_count = sum(1 for r in results if r is True)
        logger.debug(f"Broadcast {event.type} to room {room_id}: {success_count}/{len(targets)} successful")
        return success_count

    async def _close_connection(self, conn: Connection, reason: str) -> None:
        await self._send_with_timeout(conn, dump_event(WSError(reason=reason)))
        try:
            await asyncio.wait_for(
                conn.websocket.close(code=POLICY_VIOLATION, reason=reason),
                timeout=settings.WS_SEND_TIMEOUT,
            )
        except Exception as e:
            logger.debug(f"Close failed for identity={conn.identity} room={conn.room_id}: {e}")

    async def close_connection(self, connection: Connection, reason: str) -> bool:
        """Remove one connection from its room, then send `reason` and close it."""
        removed = self.leave(connection)
        if removed:
            ws_metrics.connection_closed()
        await self._close_connection(connection, reason)
        return removed

    async def close_room(self, room_id: str, reason: str) -> int:
        """
        Remove every connection of a room, telling each one why before closing it.

        Returns:
            Number of connections closed
        """
        connections = self._rooms.pop(room_id, [])
        if not connections:
            return 0

        for _ in connections:
            ws_metrics.connection_closed()

        await asyncio.gather(
            *(self._close_connection(conn, reason) for conn in connections),
            return_exceptions=True,
        )
        logger.info(f"Closed {len(connections)} connection(s) in room {room_id}: {reason}")
        return len(connections)

    def get_room_connections(self, room_id: str) -> List[Connection]:
        return list(self._rooms.get(room_id, []))

    def get_connection_count(self) -> int:
        """Get total number of active connections."""
        return sum(len(conns) for conns in self._rooms.values())

    def get_room_count(self) -> int:
        return len(self._rooms)

    def get_metrics(self) -> dict:
        """
        Get comprehensive WebSocket metrics.

        Returns:
            Dictionary with connection and message metrics
        """
        metrics = ws_metrics.get_metrics()
        metrics.update({
            "current_connections": self.get_connection_count(),
            "current_rooms": self.get_room_count(),
        })
        return metrics

    def reset(self) -> None:
        self._rooms.clear()


# Singleton instance
manager = RoomConnectionManager()
