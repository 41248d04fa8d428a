"""
Base repository pattern implementation.

Repositories own every query and commit; business logic never touches the
SQLAlchemy session directly.
"""

from typing import TypeVar, Generic, Optional, Dict, Any, Type
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# Type variable for generic entity type
T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository operations."""
    pass


class NotFoundError(RepositoryError):
    """Exception raised when entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateError(RepositoryError):
    """Exception raised when attempting to create duplicate entity."""

    def __init__(self, entity_type: str, criteria: Dict[str, Any]):
        super().__init__(f"{entity_type} already exists with criteria: {criteria}")
        self.entity_type = entity_type
        self.criteria = criteria


class BaseRepository(Generic[T]):
    """Common database operations shared by all repositories."""

    def __init__(self, db: Session, model: Type[T]):
        """
        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
        """
        self.db = db
        self.model = model

    def get_by_id(self, entity_id: Any) -> T:
        """
        Get entity by ID.

        Raises:
            NotFoundError: If entity not found
        """
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise NotFoundError(self.model.__name__, entity_id)
        return entity

    def get_by_id_optional(self, entity_id: Any) -> Optional[T]:
        """
        Get entity by ID, returning None if not found.

        Rows already in the identity map are overwritten with fresh database
        state, so a write committed by another request is always visible.
        """
        return (
            self.db.query(self.model)
            .populate_existing()
            .filter(self.model.id == entity_id)
            .first()
        )

    def create(self, entity: T) -> T:
        """
        Create a new entity.

        Raises:
            DuplicateError: If entity violates unique constraints
            RepositoryError: If database operation fails
        """
        try:
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)
            return entity
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateError(self.model.__name__, {"error": str(e.orig)}) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Failed to create {self.model.__name__}: {str(e)}") from e

    def find_one_by(self, **criteria) -> Optional[T]:
        query = self.db.query(self.model)

        for key, value in criteria.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)

        return query.first()

    def count(self, **criteria) -> int:
        query = self.db.query(self.model)

        for key, value in criteria.items():
            if hasattr(self.model, key):
                query = query.filter(getattr(self.model, key) == value)

        return query.count()

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.db.rollback()
