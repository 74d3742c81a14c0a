"""Repository pattern for database operations.

Encapsulates SQLAlchemy access behind RepositoryBase so the relation
engine never touches a session directly. Records handed out are the mapped
instances themselves, attached to the request's session, so relation
mutations are tracked until update() commits them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from linkage.core.errors import NotFoundError, UpstreamError
from linkage.repository.base import RepositoryBase

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

# Re-export for external use
__all__ = ["DbSession", "SqlAlchemyRepository"]

logger = logging.getLogger(__name__)


class SqlAlchemyRepository(RepositoryBase):
    """Repository over one mapped model, bound to one session."""

    def __init__(self, session: DbSession, model: type, resource_name: str = ""):
        """Initialize repository.

        Args:
            session: Request-scoped database session.
            model: Mapped class with a single-column primary key.
            resource_name: Logical resource name, used in error messages.
        """
        self.session = session
        self.model = model
        self.resource_name = resource_name or model.__tablename__

        primary_key = sa_inspect(model).primary_key
        if len(primary_key) != 1:
            raise ValueError(f"{model.__name__} must have a single-column primary key")
        self._pk_column = primary_key[0]

    def _coerce_id(self, record_id: Any) -> Any:
        """Convert a canonical string id to the primary key's Python type."""
        try:
            python_type = self._pk_column.type.python_type
        except NotImplementedError:
            return record_id
        if isinstance(record_id, python_type):
            return record_id
        try:
            return python_type(record_id)
        except (TypeError, ValueError) as e:
            raise NotFoundError(record_id, self.resource_name) from e

    def get(self, record_id: str) -> Any:
        key = self._coerce_id(record_id)
        try:
            record = self.session.get(self.model, key)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load {self.resource_name} {record_id}: {e}")
            raise UpstreamError(f"Failed to load {self.resource_name} {record_id}") from e

        if record is None:
            raise NotFoundError(record_id, self.resource_name)
        return record

    def update(self, record_id: str, record: Any) -> Any:
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning(f"Rolled back update of {self.resource_name} {record_id}: {e}")
            raise UpstreamError(f"Failed to update {self.resource_name} {record_id}") from e
        return record
