"""FastAPI application factory.

API layer:
- Parses requests, resolves repositories per request, frames responses
- Maps relation errors to HTTP status codes
- Forbidden: relation semantics (those live in linkage.core)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linkage.api.deps import get_db_session  # noqa: F401  (re-exported for dependency overrides)
from linkage.core.accessor import default_registry
from linkage.core.errors import NotFoundError, RelationError, UpstreamError
from linkage.db.repo import DbSession, SqlAlchemyRepository
from linkage.db.schema import Author, Category, Post, Profile, Tag
from linkage.models.resource import Resource
from linkage.models.types import ErrorResponse
from linkage.repository.base import RepositoryBase

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[DbSession, Resource], RepositoryBase]

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def sqlalchemy_repository_factory(session: DbSession, resource: Resource) -> RepositoryBase:
    """Build a request-scoped SQLAlchemy repository for a resource."""
    if resource.model is None:
        raise ValueError(f"Resource {resource.name} has no model")
    return SqlAlchemyRepository(session, resource.model, resource.name)


def default_resources() -> list[Resource]:
    """Resources for the demo blog schema."""
    return [
        Resource.from_model("authors", Author),
        Resource.from_model("profiles", Profile),
        Resource.from_model("posts", Post),
        Resource.from_model("categories", Category),
        Resource.from_model("tags", Tag),
    ]


class ResourceRegistry:
    """Resources of one application and the way to reach their records.

    Built once by create_app() and handed to the routes explicitly.
    """

    def __init__(self, resources: Iterable[Resource], repository_factory: RepositoryFactory):
        self.resources = {resource.name: resource for resource in resources}
        self.repository_factory = repository_factory

    def __iter__(self):
        return iter(self.resources.values())

    def repository(self, session: DbSession, name: str) -> RepositoryBase | None:
        """Repository for a resource, or None if the resource is unknown."""
        resource = self.resources.get(name)
        if resource is None:
            return None
        return self.repository_factory(session, resource)


def error_status(exc: RelationError) -> int:
    """HTTP status for a relation error."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, UpstreamError):
        return 500
    return 400


def _cors_origins() -> list[str]:
    raw = os.environ.get("LINKAGE_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(
    resources: Iterable[Resource] | None = None,
    repository_factory: RepositoryFactory | None = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        resources: Resources to expose. Defaults to the demo blog resources.
        repository_factory: Builds a repository for (session, resource).
            Defaults to SQLAlchemy repositories over ``resource.model``.

    Returns:
        Configured FastAPI application.
    """
    resources = list(resources) if resources is not None else default_resources()
    if repository_factory is None:
        missing = [r.name for r in resources if r.model is None]
        if missing:
            raise ValueError(f"Resources without a model need a repository_factory: {missing}")
        repository_factory = sqlalchemy_repository_factory

    # Build accessor tables up front so unsupported record shapes fail here
    for resource in resources:
        if resource.model is not None:
            default_registry.register(resource.model)

    registry = ResourceRegistry(resources, repository_factory)

    app = FastAPI(
        title="Linkage API",
        description="Generic relationship actions for admin-style resources",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RelationError)
    async def relation_error_handler(request: Request, exc: RelationError) -> JSONResponse:
        status = error_status(exc)
        if status >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status, content=ErrorResponse(error=str(exc)).model_dump())

    # Include routes
    from linkage.api.routes import relations

    router = APIRouter(prefix="/api")
    for resource in registry:
        relations.register_relation_routes(router, resource, registry)
    app.include_router(router)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# Default app instance
app = create_app()
