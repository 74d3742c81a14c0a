"""In-memory repository for demos and testing.

Stores mapping or native records keyed by canonical string id. Records are
copied on the way in and on the way out, so a caller mutating a fetched
record changes nothing until it calls update().
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import Any

from linkage.core.errors import NotFoundError
from linkage.core.identity import normalize_id
from linkage.repository.base import RepositoryBase


class InMemoryRepository(RepositoryBase):
    """Dict-backed repository.

    Write-through semantics are last-write-wins. Every call is recorded in
    ``calls`` so tests can assert which ids were fetched or updated.
    """

    def __init__(
        self,
        records: Iterable[Any] = (),
        *,
        id_field: str = "ID",
        resource_name: str = "",
    ):
        """Initialize repository.

        Args:
            records: Initial records; each must carry ``id_field``.
            id_field: Field (mapping key or attribute) holding the record id.
            resource_name: Logical resource name, used in error messages.
        """
        self.id_field = id_field
        self.resource_name = resource_name
        self.calls: list[tuple[str, str]] = []
        self._records: dict[str, Any] = {}
        for record in records:
            self.add(record)

    def _record_id(self, record: Any) -> str:
        if isinstance(record, dict):
            return normalize_id(record[self.id_field])
        return normalize_id(getattr(record, self.id_field))

    def add(self, record: Any) -> None:
        """Store a record under its own id."""
        self._records[self._record_id(record)] = copy.deepcopy(record)

    def get(self, record_id: str) -> Any:
        self.calls.append(("get", record_id))
        record = self._records.get(normalize_id(record_id))
        if record is None:
            raise NotFoundError(record_id, self.resource_name or None)
        return copy.deepcopy(record)

    def update(self, record_id: str, record: Any) -> Any:
        self.calls.append(("update", record_id))
        key = normalize_id(record_id)
        if key not in self._records:
            raise NotFoundError(record_id, self.resource_name or None)
        self._records[key] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def peek(self, record_id: Any) -> Any:
        """Get the stored record without copying or recording the call."""
        return self._records.get(normalize_id(record_id))
