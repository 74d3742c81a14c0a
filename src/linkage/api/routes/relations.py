"""Relation action endpoints.

For every relation ``rel`` declared by a resource:

POST /api/{resource}/{id}/actions/attach-{rel} - Attach ids to the relation
POST /api/{resource}/{id}/actions/detach-{rel} - Detach ids from the relation
GET  /api/{resource}/{id}/actions/list-{rel}   - List the relation's content
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from linkage.api.actions import ActionContext, CustomAction, register_custom_actions
from linkage.core.coordinator import RelationCoordinator
from linkage.core.errors import InvalidPayloadError
from linkage.models.resource import Resource
from linkage.models.types import RelationRequest, RelationResponse
from linkage.repository.base import RepositoryBase

if TYPE_CHECKING:
    from fastapi import APIRouter

    from linkage.api.app import ResourceRegistry

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_request(payload: Any) -> RelationRequest:
    """Validate an attach/detach body.

    A missing body reads as an empty id list, which the engine rejects.
    """
    if payload is None:
        return RelationRequest()
    try:
        return RelationRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidPayloadError(f"Invalid relation request: {e.errors()[0]['msg']}") from e


def _coordinator(context: ActionContext, resource: Resource, repository: RepositoryBase):
    return RelationCoordinator(resource.get_relations(), repository, related=context.related)


def attach_action(relation_name: str) -> CustomAction:
    """Build the attach action for one relation."""

    def handler(context: ActionContext, resource: Resource, repository: RepositoryBase) -> dict:
        request = _parse_request(context.payload)
        result = _coordinator(context, resource, repository).attach(
            context.record_id, relation_name, request.ids
        )
        return RelationResponse(success=result.success, message=result.message).model_dump(
            exclude_none=True
        )

    return CustomAction(
        name=f"attach-{relation_name}", method="POST", handler=handler, requires_id=True
    )


def detach_action(relation_name: str) -> CustomAction:
    """Build the detach action for one relation."""

    def handler(context: ActionContext, resource: Resource, repository: RepositoryBase) -> dict:
        request = _parse_request(context.payload)
        result = _coordinator(context, resource, repository).detach(
            context.record_id, relation_name, request.ids
        )
        return RelationResponse(success=result.success, message=result.message).model_dump(
            exclude_none=True
        )

    return CustomAction(
        name=f"detach-{relation_name}", method="POST", handler=handler, requires_id=True
    )


def list_relation_action(relation_name: str) -> CustomAction:
    """Build the list action for one relation.

    ``?expand=true`` fetches the records behind many-to-many ids.
    """

    def handler(context: ActionContext, resource: Resource, repository: RepositoryBase) -> Any:
        expand = context.query.get("expand", "").lower() in _TRUTHY
        return _coordinator(context, resource, repository).list_related(
            context.record_id, relation_name, expand=expand
        )

    return CustomAction(
        name=f"list-{relation_name}", method="GET", handler=handler, requires_id=True
    )


def relation_actions(relation_names: list[str]) -> list[CustomAction]:
    """Attach, detach and list actions for each relation name."""
    actions: list[CustomAction] = []
    for name in relation_names:
        actions.extend([attach_action(name), detach_action(name), list_relation_action(name)])
    return actions


def register_relation_routes(
    router: APIRouter, resource: Resource, registry: ResourceRegistry
) -> None:
    """Register relation actions for every relation a resource declares."""
    names = [relation.name for relation in resource.get_relations()]
    if names:
        register_custom_actions(router, resource, relation_actions(names), registry)
