"""Mutation engine: attach and detach per relation kind.

Mutates the parent record in place and never persists; the coordinator
commits through the repository afterwards.

Attach:
- one-to-one: fetch the first id, replace the field with the record
- one-to-many: fetch each id in order, append to the sequence (no dedup)
- many-to-one: fetch the first id to check it exists, store the raw id
  in the foreign key field
- many-to-many: append each raw id unless already present (no fetch)

Detach:
- one-to-one: clear the field (must be nullable)
- one-to-many: drop elements whose reference field matches an id,
  compared in canonical string form
- many-to-one: reset the foreign key to its zero value, ids ignored
- many-to-many: drop elements equal to an id (raw equality)

Multi-id operations are not atomic: a failure part way through leaves
earlier changes on the in-memory parent.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from linkage.core.accessor import AccessorRegistry, default_registry
from linkage.core.errors import (
    EmptyOperandError,
    FieldNotFoundError,
    UnsettableFieldError,
    UnsupportedRelationTypeError,
)
from linkage.core.identity import normalize_id, normalize_ids
from linkage.core.resolver import fetch_one
from linkage.models.relation import RelationDescriptor, RelationType, known_relation_type
from linkage.repository.base import RepositoryBase


# ============================================================================
# Attach
# ============================================================================


def _attach_one_to_one(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    repository: RepositoryBase,
    accessors: AccessorRegistry,
) -> None:
    related = fetch_one(repository, ids[0])
    accessors.set_field(parent, descriptor.field, related)


def _attach_one_to_many(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    repository: RepositoryBase,
    accessors: AccessorRegistry,
) -> None:
    items = accessors.get_sequence_field(parent, descriptor.field)
    for record_id in ids:
        items.append(fetch_one(repository, record_id))


def _attach_many_to_one(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    repository: RepositoryBase,
    accessors: AccessorRegistry,
) -> None:
    # Existence check only; the raw id is what gets stored
    fetch_one(repository, ids[0])
    accessors.set_field(parent, descriptor.foreign_key_field, ids[0])


def _attach_many_to_many(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    repository: RepositoryBase,
    accessors: AccessorRegistry,
) -> None:
    members = accessors.get_sequence_field(parent, descriptor.field)
    for record_id in ids:
        if record_id not in members:
            members.append(record_id)


_ATTACHERS = {
    RelationType.ONE_TO_ONE: _attach_one_to_one,
    RelationType.ONE_TO_MANY: _attach_one_to_many,
    RelationType.MANY_TO_ONE: _attach_many_to_one,
    RelationType.MANY_TO_MANY: _attach_many_to_many,
}


def attach(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    repository: RepositoryBase,
    accessors: AccessorRegistry = default_registry,
) -> None:
    """Attach related records to a parent.

    Args:
        parent: Parent record, mutated in place.
        descriptor: Relation to attach through.
        ids: Raw ids of the related records (non-empty).
        repository: Repository for the related resource.
        accessors: Accessor registry for field I/O.

    Raises:
        EmptyOperandError: If ids is empty.
        UnsupportedRelationTypeError: If the descriptor kind is unknown.
    """
    if not ids:
        raise EmptyOperandError("attach")

    attacher = _ATTACHERS.get(known_relation_type(descriptor.type))
    if attacher is None:
        raise UnsupportedRelationTypeError(descriptor.type)

    attacher(parent, descriptor, ids, repository, accessors)


# ============================================================================
# Detach
# ============================================================================


def _detach_one_to_one(
    parent: Any, descriptor: RelationDescriptor, ids: Sequence[Any], accessors: AccessorRegistry
) -> None:
    if not accessors.is_nullable(parent, descriptor.field):
        raise UnsettableFieldError(descriptor.field, "cannot set non-nullable field to None")
    accessors.set_field(parent, descriptor.field, None)


def _detach_one_to_many(
    parent: Any, descriptor: RelationDescriptor, ids: Sequence[Any], accessors: AccessorRegistry
) -> None:
    items = accessors.get_sequence_field(parent, descriptor.field)
    remove = normalize_ids(ids)

    kept = []
    for item in items:
        try:
            item_id = accessors.get_field(item, descriptor.reference_field)
        except FieldNotFoundError:
            # Elements without an identity cannot be matched and are dropped
            continue
        if normalize_id(item_id) not in remove:
            kept.append(item)

    accessors.set_field(parent, descriptor.field, kept)


def _detach_many_to_one(
    parent: Any, descriptor: RelationDescriptor, ids: Sequence[Any], accessors: AccessorRegistry
) -> None:
    field_name = descriptor.foreign_key_field
    accessors.set_field(parent, field_name, accessors.zero_value(parent, field_name))


def _detach_many_to_many(
    parent: Any, descriptor: RelationDescriptor, ids: Sequence[Any], accessors: AccessorRegistry
) -> None:
    members = accessors.get_sequence_field(parent, descriptor.field)
    kept = [member for member in members if member not in ids]
    accessors.set_field(parent, descriptor.field, kept)


_DETACHERS = {
    RelationType.ONE_TO_ONE: _detach_one_to_one,
    RelationType.ONE_TO_MANY: _detach_one_to_many,
    RelationType.MANY_TO_ONE: _detach_many_to_one,
    RelationType.MANY_TO_MANY: _detach_many_to_many,
}


def detach(
    parent: Any,
    descriptor: RelationDescriptor,
    ids: Sequence[Any],
    accessors: AccessorRegistry = default_registry,
) -> None:
    """Detach related records from a parent.

    Args:
        parent: Parent record, mutated in place.
        descriptor: Relation to detach through.
        ids: Raw ids to detach (non-empty; ignored for one-to-one and many-to-one).
        accessors: Accessor registry for field I/O.

    Raises:
        EmptyOperandError: If ids is empty.
        UnsupportedRelationTypeError: If the descriptor kind is unknown.
    """
    if not ids:
        raise EmptyOperandError("detach")

    detacher = _DETACHERS.get(known_relation_type(descriptor.type))
    if detacher is None:
        raise UnsupportedRelationTypeError(descriptor.type)

    detacher(parent, descriptor, ids, accessors)
