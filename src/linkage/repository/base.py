"""Base repository interface.

The relation engine talks to persistence through a narrow interface:
- get(id) -> record
- update(id, record) -> record

Create, delete and list belong to the CRUD layer and are never called
by the relation engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class RepositoryBase(ABC):
    """Abstract base class for record repositories.

    Implementations must NOT:
    - Interpret relation descriptors
    - Retry failed calls (callers see the first failure)

    ``get`` may either raise NotFoundError or return None for a missing
    record; both surface as NotFoundError in the relation engine. Other
    failures should be raised as UpstreamError.
    """

    resource_name: str = ""

    @abstractmethod
    def get(self, record_id: str) -> Any:
        """Fetch a record by id.

        Args:
            record_id: Record id in canonical string form.

        Returns:
            The record, or None if it does not exist.
        """
        pass

    @abstractmethod
    def update(self, record_id: str, record: Any) -> Any:
        """Persist a (mutated) record.

        Args:
            record_id: Id of the record being replaced.
            record: Record to store.

        Returns:
            The stored record.
        """
        pass
