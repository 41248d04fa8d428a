"""Repository for interview sessions."""

import secrets
import time
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from hirehub_backend.model.auth import User
from hirehub_backend.model.session import InterviewSession
from hirehub_backend.repositories.base import BaseRepository
from hirehub_types.sessions import SessionStatus


def generate_room_id() -> str:
    """`session_<epoch-ms>_<random>`; unique per session and never reused."""
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class SessionRepository(BaseRepository[InterviewSession]):
    """
    Persistence for InterviewSession.

    Mutations are conditional UPDATE statements that bump `version` and
    report whether they matched a row, so two writers (even in different
    processes) can never both succeed on the same state transition.
    """

    def __init__(self, db: Session):
        super().__init__(db, InterviewSession)

    def get(self, session_id: str) -> Optional[InterviewSession]:
        return self.get_by_id_optional(session_id)

    def find_by_room_id(self, room_id: str) -> Optional[InterviewSession]:
        return (
            self.db.query(InterviewSession)
            .populate_existing()
            .filter(InterviewSession.room_id == room_id)
            .first()
        )

    def create_session(self, host: User, problem: str, difficulty: str) -> InterviewSession:
        session = InterviewSession(
            room_id=generate_room_id(),
            problem=problem,
            difficulty=difficulty,
            status=SessionStatus.ACTIVE.value,
            host_id=host.id,
            version=0,
        )
        return self.create(session)

    def _conditional_update(self, session: InterviewSession, conditions: list, values: dict) -> bool:
        stmt = (
            update(InterviewSession)
            .where(InterviewSession.id == session.id, *conditions)
            .values(
                version=InterviewSession.version + 1,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.commit()

        # Picks up the winning writer's state on a lost race
        self.db.refresh(session)
        return result.rowcount == 1

    def assign_participant(self, session: InterviewSession, user: User) -> bool:
        """
        Claim the participant slot for `user`.

        Returns False when the slot was taken or the session completed in the
        meantime.
        """
        return self._conditional_update(
            session,
            [
                InterviewSession.participant_id.is_(None),
                InterviewSession.status == SessionStatus.ACTIVE.value,
            ],
            {"participant_id": user.id},
        )

    def clear_participant(self, session: InterviewSession, user: User) -> bool:
        return self._conditional_update(
            session,
            [InterviewSession.participant_id == user.id],
            {"participant_id": None},
        )

    def complete(self, session: InterviewSession) -> bool:
        """Mark the session completed. False if it already was."""
        return self._conditional_update(
            session,
            [InterviewSession.status == SessionStatus.ACTIVE.value],
            {"status": SessionStatus.COMPLETED.value},
        )

    def find_active(self, limit: Optional[int] = None) -> List[InterviewSession]:
        """Active sessions, newest first."""
        query = (
            self.db.query(InterviewSession)
            .filter(InterviewSession.status == SessionStatus.ACTIVE.value)
            .order_by(InterviewSession.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_recent_for_user(self, user_id: str, limit: Optional[int] = None) -> List[InterviewSession]:
        """Completed sessions the user hosted or joined, newest first."""
        query = (
            self.db.query(InterviewSession)
            .filter(
                InterviewSession.status == SessionStatus.COMPLETED.value,
                or_(
                    InterviewSession.host_id == user_id,
                    InterviewSession.participant_id == user_id,
                ),
            )
            .order_by(InterviewSession.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_active(self) -> int:
        return self.count(status=SessionStatus.ACTIVE.value)
