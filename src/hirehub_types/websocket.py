"""
WebSocket event DTOs for interview room communication.

Every frame is a JSON object with a "type" key naming the event.
Client events are relayed to the room the connection was admitted to;
server events are either direct replies (connected, error) or room
broadcasts (presence, chat, code, typing).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional, Union


# =============================================================================
# Base Event Types
# =============================================================================

class WSEventBase(BaseModel):
    """Base class for all WebSocket events."""
    type: str

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Client -> Server Events
# =============================================================================

class WSChatMessageSend(WSEventBase):
    """Chat message typed by a room member."""
    type: Literal["message"] = "message"
    text: Optional[str] = Field(None, description="Free-form chat text; blank text is dropped")


class WSCodeChangeSend(WSEventBase):
    """Editor content changed."""
    type: Literal["code_change"] = "code_change"
    code: str = Field(..., description="Full editor content")
    language: str = Field(..., description="Editor language, e.g. 'python'")


class WSTypingSend(WSEventBase):
    """Typing indicator toggled."""
    type: Literal["typing"] = "typing"
    is_typing: bool = Field(..., alias="isTyping")


# =============================================================================
# Server -> Client Events
# =============================================================================

class WSConnected(WSEventBase):
    """Admission confirmation sent to the connecting socket only."""
    type: Literal["connected"] = "connected"
    room: str
    identity: str


class WSUserJoined(WSEventBase):
    type: Literal["user_joined"] = "user_joined"
    identity: str
    timestamp: int = Field(..., description="Epoch milliseconds")


class WSUserLeft(WSEventBase):
    type: Literal["user_left"] = "user_left"
    identity: str
    timestamp: int = Field(..., description="Epoch milliseconds")


class WSChatMessage(WSEventBase):
    type: Literal["message"] = "message"
    identity: str
    text: str
    timestamp: int = Field(..., description="Epoch milliseconds")


class WSCodeChange(WSEventBase):
    type: Literal["code_change"] = "code_change"
    identity: str
    code: str
    language: str


class WSTyping(WSEventBase):
    type: Literal["typing"] = "typing"
    identity: str
    is_typing: bool = Field(..., alias="isTyping")


class WSError(WSEventBase):
    """Error event; reason is a short machine-readable string."""
    type: Literal["error"] = "error"
    reason: str


# =============================================================================
# Union Types for Parsing
# =============================================================================

ClientEvent = Union[
    WSChatMessageSend,
    WSCodeChangeSend,
    WSTypingSend,
]

ServerEvent = Union[
    WSConnected,
    WSUserJoined,
    WSUserLeft,
    WSChatMessage,
    WSCodeChange,
    WSTyping,
    WSError,
]


CLIENT_EVENT_TYPES = {
    "message": WSChatMessageSend,
    "code_change": WSCodeChangeSend,
    "typing": WSTypingSend,
}


def parse_client_event(data: dict) -> Optional[ClientEvent]:
    """
    Parse incoming client event data into typed event object.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event object or None if invalid
    """
    if not isinstance(data, dict):
        return None

    event_type = data.get("type")
    if not event_type or event_type not in CLIENT_EVENT_TYPES:
        return None

    event_class = CLIENT_EVENT_TYPES[event_type]
    try:
        return event_class.model_validate(data)
    except Exception:
        return None


def dump_event(event: WSEventBase) -> dict:
    """Serialize a server event with its wire (camelCase) field names."""
    return event.model_dump(by_alias=True, mode="json")
