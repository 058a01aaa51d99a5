# backend/app/repositories/base_repository.py
"""
Shared plumbing for Room Rental repositories.

A repository wraps one model and the session handed to it by a service.
It flushes so generated IDs are visible, but it never commits: bookings,
challenges and payment events are always written inside a service-owned
transaction so a failed step leaves nothing half-applied.
"""

import logging
from typing import Any, Generic, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """Primary-key lookup and insert for a single model."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        """Return the row with this ULID, or None."""
        try:
            query = self.db.query(self.model).filter(self.model.id == id)
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as exc:
            self._fail(f"load {self.model.__name__} {id}", exc)

    def create(self, **fields: Any) -> T:
        """
        Insert a new row and flush it.

        Constraint violations (a phone already claimed, a duplicate ledger
        key) roll the session back and surface as RepositoryException.
        """
        entity = self.model(**fields)
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            self._fail(f"insert {self.model.__name__} (constraint)", exc)
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._fail(f"insert {self.model.__name__}", exc)
        return entity

    def _apply_eager_loading(self, query: Query) -> Query:
        """Hook for subclasses that always need related rows (a booking's room)."""
        return query

    def _fail(self, action: str, exc: SQLAlchemyError) -> NoReturn:
        self.logger.error("Failed to %s: %s", action, exc)
        raise RepositoryException(f"Failed to {action}: {exc}") from exc
