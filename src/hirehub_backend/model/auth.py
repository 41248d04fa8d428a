from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String

from .base import Base


class User(Base):
    """Local mirror of an identity-provider account.

    Rows are created lazily the first time an identity calls the API.
    Room authorization always uses `identity`, never `id`.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    identity = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255))
    email = Column(String(320))
    profile_image = Column(String(1024), default="")
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
