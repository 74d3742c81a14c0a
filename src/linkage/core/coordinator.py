"""Persistence coordinator for relation operations.

Orchestrates a single relation request:
fetch parent -> find descriptor -> attach/detach -> repository.update

Relation descriptors and repositories are injected; nothing is looked up
from process-wide state. Relation errors propagate unchanged; any other
failure from repository.update surfaces as UpstreamError.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from linkage.core import mutation
from linkage.core.accessor import AccessorRegistry, default_registry
from linkage.core.errors import RelationError, RelationNotFoundError, UpstreamError
from linkage.core.resolver import expand_ids, fetch_one, resolve_for_list
from linkage.models.relation import RelationDescriptor, RelationType, known_relation_type
from linkage.repository.base import RepositoryBase

logger = logging.getLogger(__name__)

RelatedLookup = Callable[[str], RepositoryBase | None]


@dataclass
class RelationResult:
    """Result of a committed attach or detach."""

    success: bool
    message: str
    relation: str
    count: int


class RelationCoordinator:
    """Runs attach, detach and list for one resource's relations.

    A coordinator is cheap to build and meant to live for one request.
    """

    def __init__(
        self,
        relations: Iterable[RelationDescriptor],
        repository: RepositoryBase,
        related: RelatedLookup | None = None,
        accessors: AccessorRegistry | None = None,
    ):
        """Initialize coordinator.

        Args:
            relations: Descriptors of the owning resource.
            repository: Repository holding parent records.
            related: Lookup from resource name to that resource's repository.
                Targets it cannot resolve use the parent repository.
            accessors: Accessor registry, defaults to the process default.
        """
        self.relations = list(relations)
        self.repository = repository
        self.related = related
        self.accessors = accessors or default_registry

    def describe(self, relation_name: str) -> RelationDescriptor:
        """Get a relation descriptor by name.

        Raises:
            RelationNotFoundError: If the resource declares no such relation.
        """
        for relation in self.relations:
            if relation.name == relation_name:
                return relation
        raise RelationNotFoundError(relation_name)

    def repository_for(self, descriptor: RelationDescriptor) -> RepositoryBase:
        """Repository holding the records a relation points at."""
        if self.related is not None and descriptor.resource:
            repository = self.related(descriptor.resource)
            if repository is not None:
                return repository
        return self.repository

    def _load(self, parent_id: str, relation_name: str) -> tuple[Any, RelationDescriptor]:
        parent = fetch_one(self.repository, parent_id)
        return parent, self.describe(relation_name)

    def _commit(self, parent_id: str, parent: Any) -> None:
        try:
            self.repository.update(parent_id, parent)
        except RelationError:
            raise
        except Exception as e:
            logger.warning(f"Repository update failed for {parent_id}: {e}")
            raise UpstreamError(f"Failed to update {parent_id}: {e}") from e

    def attach(self, parent_id: str, relation_name: str, ids: Sequence[Any]) -> RelationResult:
        """Attach related records to a parent and persist it.

        Args:
            parent_id: Id of the parent record.
            relation_name: Relation to attach through.
            ids: Raw ids of the related records.

        Returns:
            RelationResult describing what was attached.
        """
        parent, descriptor = self._load(parent_id, relation_name)
        mutation.attach(
            parent, descriptor, ids, self.repository_for(descriptor), accessors=self.accessors
        )
        self._commit(parent_id, parent)

        logger.info(f"Attached {len(ids)} {relation_name} to {parent_id}")
        return RelationResult(
            success=True,
            message=f"Successfully attached {len(ids)} {relation_name}",
            relation=relation_name,
            count=len(ids),
        )

    def detach(self, parent_id: str, relation_name: str, ids: Sequence[Any]) -> RelationResult:
        """Detach related records from a parent and persist it.

        Args:
            parent_id: Id of the parent record.
            relation_name: Relation to detach from.
            ids: Raw ids to detach.

        Returns:
            RelationResult describing what was detached.
        """
        parent, descriptor = self._load(parent_id, relation_name)
        mutation.detach(parent, descriptor, ids, accessors=self.accessors)
        self._commit(parent_id, parent)

        logger.info(f"Detached {len(ids)} {relation_name} from {parent_id}")
        return RelationResult(
            success=True,
            message=f"Successfully detached {len(ids)} {relation_name}",
            relation=relation_name,
            count=len(ids),
        )

    def list_related(self, parent_id: str, relation_name: str, expand: bool = False) -> Any:
        """Resolve the current content of a relation.

        Args:
            parent_id: Id of the parent record.
            relation_name: Relation to list.
            expand: Fetch the records behind a many-to-many id sequence
                instead of returning the raw ids.

        Returns:
            Relation content (a record, a sequence, or None).
        """
        parent, descriptor = self._load(parent_id, relation_name)
        related_repository = self.repository_for(descriptor)
        content = resolve_for_list(parent, descriptor, related_repository, self.accessors)

        if expand and known_relation_type(descriptor.type) is RelationType.MANY_TO_MANY:
            content = expand_ids(related_repository, content)

        logger.debug(f"Listed {relation_name} for {parent_id}")
        return content
