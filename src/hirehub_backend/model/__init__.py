from .base import Base, metadata
from .auth import User
from .session import InterviewSession
from .audit import AuditLog, AuditAction

__all__ = [
    "Base",
    "metadata",
    "User",
    "InterviewSession",
    "AuditLog",
    "AuditAction",
]
