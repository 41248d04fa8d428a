from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from .base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class InterviewSession(Base):
    __tablename__ = 'interview_sessions'
    __table_args__ = (
        Index('interview_session_status_created_idx', 'status', 'created_at'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    version = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    room_id = Column(String(128), nullable=False, unique=True, index=True)
    problem = Column(String(255), nullable=False)
    difficulty = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default="active")  # active | completed

    host_id = Column(ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, index=True)
    participant_id = Column(ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True)

    host = relationship('User', foreign_keys=[host_id], lazy='joined')
    participant = relationship('User', foreign_keys=[participant_id], lazy='joined')

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def member_identities(self) -> set[str]:
        """External identities currently entitled to the room."""
        identities = set()
        if self.host is not None:
            identities.add(self.host.identity)
        if self.participant is not None:
            identities.add(self.participant.identity)
        return identities
