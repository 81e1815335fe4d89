"""Base repository class."""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from powerlog.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with lookup and delete operations."""

    model: type[ModelT]

    def __init__(self, session: Session) -> None:
        """Initialize repository with a session.

        Args:
            session: SQLAlchemy session.
        """
        self.session = session

    def get_by_id(self, id: str) -> ModelT | None:
        """Get a record by its primary key.

        Args:
            id: Primary key value.

        Returns:
            Model instance or None if not found.
        """
        return self.session.get(self.model, id)

    def delete(self, instance: ModelT) -> None:
        """Delete a record.

        Args:
            instance: Model instance to delete.
        """
        self.session.delete(instance)
        self.session.flush()
