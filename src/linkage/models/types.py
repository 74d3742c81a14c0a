"""Pydantic models for the Linkage API wire format.

Changes here change the HTTP contract of every relation action.
"""

from typing import Any

from pydantic import BaseModel, Field


class RelationRequest(BaseModel):
    """Attach/detach request body: ``{"ids": [...]}``."""

    ids: list[Any] = Field(default_factory=list)


class RelationResponse(BaseModel):
    """Attach/detach result. ``message`` is omitted when empty."""

    success: bool
    message: str | None = None


class ActionResponse(BaseModel):
    """Envelope for every custom action result."""

    data: Any = None


class ErrorResponse(BaseModel):
    """Error body returned for failed actions."""

    error: str
