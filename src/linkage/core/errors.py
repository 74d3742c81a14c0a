"""Error taxonomy for relation operations.

Every failure raised by the relation engine derives from RelationError so
the HTTP boundary can map the whole family with a single handler. The core
never translates these into responses itself.
"""

from __future__ import annotations


class RelationError(Exception):
    """Base class for relation engine failures."""


class EmptyOperandError(RelationError):
    """No ids were supplied to attach or detach."""

    def __init__(self, operation: str = "attach"):
        super().__init__(f"No IDs provided to {operation}")
        self.operation = operation


class InvalidPayloadError(RelationError):
    """Request body could not be read as a relation request."""


class RelationNotFoundError(RelationError):
    """The owning resource declares no relation with this name."""

    def __init__(self, relation_name: str):
        super().__init__(f"Relation {relation_name} not found")
        self.relation_name = relation_name


class FieldNotFoundError(RelationError):
    """The record has no field with the requested name."""

    def __init__(self, field_name: str):
        super().__init__(f"Field {field_name} not found")
        self.field_name = field_name


class NotASequenceError(RelationError):
    """The field exists but does not hold a mutable sequence."""

    def __init__(self, field_name: str):
        super().__init__(f"Field {field_name} is not a sequence")
        self.field_name = field_name


class UnsettableFieldError(RelationError):
    """The field cannot be assigned the requested value."""

    def __init__(self, field_name: str, reason: str):
        super().__init__(f"Field {field_name} cannot be set: {reason}")
        self.field_name = field_name
        self.reason = reason


class UnsupportedRelationTypeError(RelationError):
    """Descriptor kind is outside the four known relation types."""

    def __init__(self, relation_type: object):
        super().__init__(f"Unsupported relation type: {relation_type}")
        self.relation_type = relation_type


class NotFoundError(RelationError):
    """Parent or related record does not exist."""

    def __init__(self, record_id: object, resource: str | None = None):
        label = resource or "Record"
        super().__init__(f"{label} {record_id} not found")
        self.record_id = record_id
        self.resource = resource


class UpstreamError(RelationError):
    """Repository collaborator failed for a reason other than a missing record."""
