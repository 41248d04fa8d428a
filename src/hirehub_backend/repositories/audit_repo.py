"""Repository for the append-only audit log."""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hirehub_backend.model.audit import AuditAction, AuditLog
from hirehub_backend.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):

    def __init__(self, db: Session):
        super().__init__(db, AuditLog)

    def record(self, action: AuditAction, performed_by: str, details: Optional[Dict[str, Any]] = None) -> AuditLog:
        return self.create(AuditLog(action=action, performed_by=performed_by, details=details or {}))

    def find_by_action(self, action: AuditAction) -> List[AuditLog]:
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.action == action)
            .order_by(AuditLog.created_at.desc())
            .all()
        )
