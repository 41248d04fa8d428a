"""Repository for local user records."""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hirehub_backend.model.auth import User
from hirehub_backend.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_identity(self, identity: str) -> Optional[User]:
        return self.find_one_by(identity=identity)

    def get_or_create_placeholder(self, identity: str) -> User:
        """
        Return the user for `identity`, creating a placeholder row on first sight.

        The placeholder carries the identity as its name and a synthetic
        `<identity>@no-email.local` address until real profile data arrives.
        """
        user = self.get_by_identity(identity)
        if user is not None:
            return user

        try:
            user = User(
                identity=identity,
                name=identity,
                email=f"{identity}@no-email.local",
                profile_image="",
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            return user
        except IntegrityError:
            # Another request created it first
            self.db.rollback()
            return self.get_by_identity(identity)
