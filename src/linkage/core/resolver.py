"""Relation resolver.

Fetches related records through a repository and resolves the current
content of a relation for read-only listing. Nothing here mutates a
record or persists anything.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from linkage.core.accessor import AccessorRegistry, default_registry
from linkage.core.errors import (
    NotFoundError,
    RelationError,
    UnsupportedRelationTypeError,
    UpstreamError,
)
from linkage.core.identity import is_zero_id, normalize_id
from linkage.models.relation import RelationDescriptor, RelationType, known_relation_type
from linkage.repository.base import RepositoryBase

logger = logging.getLogger(__name__)


def fetch_one(repository: RepositoryBase, record_id: Any) -> Any:
    """Fetch a single related record.

    Args:
        repository: Repository holding the related records.
        record_id: Raw id as supplied by the caller.

    Returns:
        The related record.

    Raises:
        NotFoundError: If the repository has no such record.
        UpstreamError: If the repository failed for any other reason.
    """
    key = normalize_id(record_id)
    logger.debug(f"Fetching {repository.resource_name or 'record'} {key}")

    try:
        record = repository.get(key)
    except RelationError:
        raise
    except Exception as e:
        logger.warning(f"Repository get failed for {key}: {e}")
        raise UpstreamError(f"Failed to fetch {key}: {e}") from e

    if record is None:
        raise NotFoundError(key, repository.resource_name or None)
    return record


def fetch_many(repository: RepositoryBase, ids: Sequence[Any]) -> list[Any]:
    """Fetch related records in input order.

    The first failure aborts the whole call; no partial list is returned.
    """
    return [fetch_one(repository, record_id) for record_id in ids]


def _list_one_to_one(
    parent: Any, descriptor: RelationDescriptor, repository: RepositoryBase, accessors: AccessorRegistry
) -> Any:
    # Content is already materialized on the parent
    return accessors.get_field(parent, descriptor.field)


def _list_many_to_one(
    parent: Any, descriptor: RelationDescriptor, repository: RepositoryBase, accessors: AccessorRegistry
) -> Any:
    foreign_key = accessors.get_field(parent, descriptor.foreign_key_field)
    if is_zero_id(foreign_key):
        return None
    return fetch_one(repository, foreign_key)


def _list_sequence(
    parent: Any, descriptor: RelationDescriptor, repository: RepositoryBase, accessors: AccessorRegistry
) -> Any:
    return accessors.get_sequence_field(parent, descriptor.field)


_LISTERS = {
    RelationType.ONE_TO_ONE: _list_one_to_one,
    RelationType.MANY_TO_ONE: _list_many_to_one,
    RelationType.ONE_TO_MANY: _list_sequence,
    RelationType.MANY_TO_MANY: _list_sequence,
}


def resolve_for_list(
    parent: Any,
    descriptor: RelationDescriptor,
    repository: RepositoryBase,
    accessors: AccessorRegistry = default_registry,
) -> Any:
    """Resolve the current content of a relation.

    - one-to-one: the field value as stored on the parent
    - many-to-one: the record the foreign key points at, or None when unset
    - one-to-many / many-to-many: the stored sequence, verbatim (many-to-many
      ids are not expanded)

    Args:
        parent: Parent record.
        descriptor: Relation to resolve.
        repository: Repository for the related resource.
        accessors: Accessor registry for field I/O.

    Returns:
        Relation content.
    """
    lister = _LISTERS.get(known_relation_type(descriptor.type))
    if lister is None:
        raise UnsupportedRelationTypeError(descriptor.type)
    return lister(parent, descriptor, repository, accessors)


def expand_ids(repository: RepositoryBase, ids: Sequence[Any]) -> list[Any]:
    """Materialize a many-to-many id sequence into related records."""
    return fetch_many(repository, list(ids))
