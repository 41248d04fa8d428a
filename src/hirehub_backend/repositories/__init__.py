"""Repositories: all database access for the HireHub backend."""

from .base import BaseRepository, RepositoryError, NotFoundError, DuplicateError
from .session_repo import SessionRepository, generate_room_id
from .user_repo import UserRepository
from .audit_repo import AuditLogRepository

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "SessionRepository",
    "generate_room_id",
    "UserRepository",
    "AuditLogRepository",
]
