"""Relation descriptors.

Descriptors are static metadata binding a relation name to the field that
holds its content and to one of four cardinalities. They are loaded once
from resource configuration:
- relation tag strings ("resource=posts;type=one-to-many;field=posts")
- plain mappings (e.g. parsed from a settings file)
- model metadata (dataclass field metadata or SQLAlchemy ``info``)
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import ColumnProperty, Mapper

# Key under which model metadata carries a relation tag
RELATION_TAG_KEY = "relation"


class RelationType(str, Enum):
    """Relation cardinality."""

    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_ONE = "many-to-one"
    MANY_TO_MANY = "many-to-many"


def known_relation_type(value: Any) -> RelationType | None:
    """Map a descriptor type onto the closed enum, or None if it is unknown."""
    try:
        return RelationType(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class RelationDescriptor:
    """Static description of one relation on a resource.

    Attributes:
        name: Relation identifier used in API paths and request payloads.
        type: Cardinality.
        field: Field on the parent holding the relation's content.
        resource: Logical target resource, used for cross-entity loads.
        required: Whether the relation is required.
        reference_field: Identity field on related elements (one-to-many detach).
        foreign_key: Explicit many-to-one foreign key field, defaults to name + "ID".
    """

    name: str
    type: RelationType | str
    field: str = ""
    resource: str = ""
    required: bool = False
    reference_field: str = "ID"
    foreign_key: str | None = None

    @property
    def foreign_key_field(self) -> str:
        """Field storing the raw id for a many-to-one relation."""
        return self.foreign_key or f"{self.name}ID"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def relation_from_mapping(data: Mapping[str, Any], default_name: str | None = None) -> RelationDescriptor:
    """Build a descriptor from a configuration mapping.

    Args:
        data: Keys ``name``, ``type``, ``field``, ``resource``, ``required``,
            ``reference`` and ``foreign_key``. ``type`` is mandatory.
        default_name: Name to use when the mapping has none.

    Returns:
        RelationDescriptor.

    Raises:
        ValueError: If the type is missing or unknown, or no name is available.
    """
    type_value = data.get("type")
    if not type_value:
        raise ValueError("Relation type is required")
    try:
        relation_type = RelationType(type_value)
    except ValueError as e:
        raise ValueError(f"Unknown relation type: {type_value}") from e

    name = data.get("name") or default_name
    if not name:
        raise ValueError("Relation name is required")

    return RelationDescriptor(
        name=name,
        type=relation_type,
        field=data.get("field") or "",
        resource=data.get("resource") or "",
        required=_parse_bool(data.get("required", False)),
        reference_field=data.get("reference") or data.get("reference_field") or "ID",
        foreign_key=data.get("foreign_key") or None,
    )


def parse_relation_tag(field_name: str, tag: str) -> RelationDescriptor | None:
    """Parse a relation tag string.

    Format: ``resource=users;type=one-to-many;field=posts;reference=id;required=true``.
    Unknown keys are ignored. The relation name defaults to the field name.

    Args:
        field_name: Name of the model attribute carrying the tag.
        tag: Semicolon-separated key=value pairs.

    Returns:
        RelationDescriptor, or None if ``resource`` or ``type`` is missing.

    Raises:
        ValueError: If the type is not one of the four known kinds.
    """
    parts: dict[str, str] = {}
    for part in tag.split(";"):
        key, sep, value = part.partition("=")
        if sep:
            parts[key.strip()] = value.strip()

    if "resource" not in parts or "type" not in parts:
        return None

    return relation_from_mapping(parts, default_name=field_name)


def relations_from_config(entries: Iterable[Mapping[str, Any]]) -> list[RelationDescriptor]:
    """Build descriptors from a list of configuration mappings."""
    return [relation_from_mapping(entry) for entry in entries]


def extract_relations(model: type) -> list[RelationDescriptor]:
    """Extract tagged relations from a model class.

    SQLAlchemy attributes carry their tag in ``info={"relation": ...}``;
    dataclass fields in ``metadata={"relation": ...}``. Untagged attributes
    are skipped.

    Args:
        model: Mapped class or dataclass.

    Returns:
        Descriptors in attribute declaration order.
    """
    tagged: list[tuple[str, str]] = []

    mapper = sa_inspect(model, raiseerr=False)
    if isinstance(mapper, Mapper):
        for prop in mapper.attrs:
            tag = prop.info.get(RELATION_TAG_KEY)
            if not tag and isinstance(prop, ColumnProperty):
                # mapped_column(info=...) lands on the Column
                tag = prop.columns[0].info.get(RELATION_TAG_KEY)
            if tag:
                tagged.append((prop.key, tag))
    elif dataclasses.is_dataclass(model):
        for f in dataclasses.fields(model):
            tag = f.metadata.get(RELATION_TAG_KEY)
            if tag:
                tagged.append((f.name, tag))

    relations = []
    for field_name, tag in tagged:
        relation = parse_relation_tag(field_name, tag)
        if relation is not None:
            relations.append(relation)
    return relations
