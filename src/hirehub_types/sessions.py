from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionCreate(BaseModel):
    problem: str = Field(min_length=1, max_length=255, description="Problem title the session is about")
    difficulty: Difficulty = Field(description="Problem difficulty")

    @field_validator('problem')
    @classmethod
    def validate_problem(cls, v):
        if not v.strip():
            raise ValueError('Problem cannot be empty or only whitespace')
        return v.strip()

    @field_validator('difficulty', mode='before')
    @classmethod
    def normalize_difficulty(cls, v):
        # Problem bank stores both "Easy" and "easy"
        if isinstance(v, str):
            return v.strip().lower()
        return v


class SessionUser(BaseModel):
    """Public view of a session's host or participant."""
    id: str = Field(description="Internal user ID")
    identity: str = Field(description="External identity used for room authorization")
    name: Optional[str] = None
    email: Optional[str] = None
    profile_image: Optional[str] = Field(None, alias="profileImage")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SessionGet(BaseModel):
    id: str = Field(description="Session unique identifier")
    room_id: str = Field(alias="roomId", description="Real-time room bound to this session")
    problem: str
    difficulty: Difficulty
    status: SessionStatus
    host: Optional[SessionUser] = None
    participant: Optional[SessionUser] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SessionEnvelope(BaseModel):
    session: SessionGet


class SessionActionResponse(BaseModel):
    """Result of leave/end: the updated session plus a short confirmation."""
    session: SessionGet
    message: str


class SessionListResponse(BaseModel):
    sessions: list[SessionGet] = Field(default_factory=list)


class EndAllResult(BaseModel):
    """Outcome of ending one session during a bulk end-all."""
    session_id: str = Field(alias="sessionId")
    ok: bool
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class EndAllResponse(BaseModel):
    message: str
    results: list[EndAllResult] = Field(default_factory=list)


class EndAllPreview(BaseModel):
    count: int = Field(description="Number of sessions an end-all would complete")
