"""Custom action contract and route registration.

A custom action is a named operation bound to an HTTP method, mounted at
``/{resource}[/{record_id}]/actions/{name}``. Its handler receives an
ActionContext, the owning resource and that resource's repository, and
returns a result that is framed as ``{"data": result}``.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from linkage.api.deps import get_db_session
from linkage.core.accessor import default_registry
from linkage.core.errors import InvalidPayloadError
from linkage.db.repo import DbSession
from linkage.models.resource import Resource
from linkage.models.types import ActionResponse
from linkage.repository.base import RepositoryBase

if TYPE_CHECKING:
    from linkage.api.app import ResourceRegistry

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
NO_STORE = "no-store, no-cache, must-revalidate"


@dataclass
class ActionContext:
    """Per-request inputs handed to an action handler."""

    record_id: str | None
    payload: Any = None
    query: Mapping[str, str] = field(default_factory=dict)
    related: Callable[[str], RepositoryBase | None] = lambda name: None


ActionHandler = Callable[[ActionContext, Resource, RepositoryBase], Any]


@dataclass
class CustomAction:
    """A named operation exposed on a resource."""

    name: str
    method: str
    handler: ActionHandler
    requires_id: bool = False


def action_path(resource: Resource, action: CustomAction) -> str:
    """Route path for an action on a resource."""
    path = f"/{resource.name}"
    if action.requires_id:
        path += "/{record_id}"
    return path + f"/actions/{action.name}"


async def _read_payload(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError as e:
        raise InvalidPayloadError("Request body is not valid JSON") from e


def _make_endpoint(resource: Resource, action: CustomAction, registry: ResourceRegistry):
    method = action.method.upper()

    def run(session: DbSession, record_id: str | None, payload: Any, query: dict) -> Any:
        context = ActionContext(
            record_id=record_id,
            payload=payload,
            query=query,
            related=lambda name: registry.repository(session, name),
        )
        repository = registry.repository(session, resource.name)
        result = action.handler(context, resource, repository)
        # Runs while the session is open so lazy attributes can still load
        return default_registry.to_plain(result)

    async def endpoint(request: Request, session: DbSession = Depends(get_db_session)) -> JSONResponse:
        payload = await _read_payload(request) if method != "GET" else None
        result = await run_in_threadpool(
            run,
            session,
            request.path_params.get("record_id"),
            payload,
            dict(request.query_params),
        )

        content = ActionResponse(data=result)
        headers = {}
        if method not in ("GET", "HEAD"):
            headers["Cache-Control"] = NO_STORE
        return JSONResponse(content=jsonable_encoder(content), headers=headers)

    return endpoint


def register_custom_actions(
    router: APIRouter,
    resource: Resource,
    actions: list[CustomAction],
    registry: ResourceRegistry,
) -> None:
    """Register custom actions for a resource.

    Unrecognized methods are registered as POST.
    """
    for action in actions:
        method = action.method.upper()
        if method not in SUPPORTED_METHODS:
            method = "POST"

        router.add_api_route(
            action_path(resource, action),
            _make_endpoint(resource, action, registry),
            methods=[method],
            name=f"{resource.name}:{action.name}",
        )
