import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, String, Enum as SQLEnum

from .base import Base


class AuditAction(str, enum.Enum):
    """Audit action types."""
    END_SESSION = "end_session"
    END_ALL_SESSIONS = "end_all_sessions"


class AuditLog(Base):
    """Append-only audit trail of administrative session actions."""
    __tablename__ = 'audit_logs'
    __table_args__ = (
        Index('audit_action_created_idx', 'action', 'created_at'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    action = Column(SQLEnum(AuditAction), nullable=False)

    # Identity of whoever performed the action
    performed_by = Column(String(255), nullable=False)

    details = Column(JSON, default=dict)
