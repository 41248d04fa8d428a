"""
WebSocket package for interview rooms.

- Room authorization store (memory or Redis) with session fallback
- Connection manager owning the per-room broadcast groups
- Event relay for chat, code and typing events
"""

from hirehub_backend.websocket.connection_manager import RoomConnectionManager, manager, ws_metrics
from hirehub_backend.websocket.room_store import RoomAuthorizationStore, get_room_store, set_room_store
from hirehub_backend.websocket.router import ws_router

__all__ = [
    "RoomConnectionManager",
    "manager",
    "ws_metrics",
    "RoomAuthorizationStore",
    "get_room_store",
    "set_room_store",
    "ws_router",
]
