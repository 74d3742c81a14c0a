"""Record accessor: uniform field I/O over native and mapping records.

Records reach the relation engine in two shapes:
- mapping records (plain dicts decoded from JSON or kept in memory)
- native records (dataclasses, pydantic models, SQLAlchemy mapped
  instances, annotated plain classes)

Callers depend on the FieldAccessor interface only. Native records are
described by a FieldTable that the AccessorRegistry builds once per type,
so an unknown record shape fails when it is first registered rather than
deep inside a mutation.
"""

from __future__ import annotations

import dataclasses
import logging
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Union, get_args, get_origin

from pydantic import BaseModel
from sqlalchemy import JSON
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from linkage.core.errors import FieldNotFoundError, NotASequenceError, UnsettableFieldError
from linkage.core.identity import normalize_id

logger = logging.getLogger(__name__)

_NONE_TYPE = type(None)

# Zero values for non-nullable scalar fields
_SCALAR_ZEROS: dict[type, Any] = {int: 0, float: 0.0, str: "", bool: False}

TableKind = Literal["sqlalchemy", "dataclass", "pydantic", "plain"]


# ============================================================================
# Field tables
# ============================================================================


@dataclass(frozen=True)
class FieldSpec:
    """Declared shape of one field on a native record type."""

    name: str
    annotation: Any = Any
    nullable: bool = True
    sequence: bool = False
    settable: bool = True


@dataclass
class FieldTable:
    """Accessor table for one native record type.

    A plain class without any declared fields gets a dynamic table: its
    fields are whatever instance attributes exist at access time.
    """

    record_type: type
    kind: TableKind
    fields: dict[str, FieldSpec]
    dynamic: bool = False

    def lookup(self, record: Any, name: str) -> FieldSpec:
        """Get the field spec for a name, or raise FieldNotFoundError."""
        spec = self.fields.get(name)
        if spec is not None:
            return spec
        if self.dynamic and name in getattr(record, "__dict__", {}):
            return FieldSpec(name)
        raise FieldNotFoundError(name)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split an annotation into (inner type, nullable)."""
    if annotation is Any:
        return Any, True
    if annotation is _NONE_TYPE or annotation is None:
        return Any, True
    if isinstance(annotation, str):
        # Unresolvable forward reference
        return Any, True

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = get_args(annotation)
        inner = [a for a in args if a is not _NONE_TYPE]
        nullable = len(inner) != len(args)
        if len(inner) == 1:
            return inner[0], nullable
        return Any, nullable

    return annotation, False


def _is_sequence_annotation(annotation: Any) -> bool:
    if annotation is list:
        return True
    origin = get_origin(annotation)
    return origin is list or origin is MutableSequence


def _type_hints(record_type: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(record_type)
    except (NameError, TypeError) as e:
        logger.debug(f"Falling back to raw annotations for {record_type.__name__}: {e}")
        hints: dict[str, Any] = {}
        for klass in reversed(record_type.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


def _spec_from_annotation(name: str, annotation: Any, settable: bool = True) -> FieldSpec:
    inner, nullable = _unwrap_optional(annotation)
    return FieldSpec(
        name=name,
        annotation=inner,
        nullable=nullable,
        sequence=_is_sequence_annotation(inner),
        settable=settable,
    )


def _sqlalchemy_fields(mapper: Mapper) -> dict[str, FieldSpec]:
    specs: dict[str, FieldSpec] = {}

    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if isinstance(column.type, JSON):
            python_type: Any = Any
        else:
            try:
                python_type = column.type.python_type
            except NotImplementedError:
                python_type = Any
        specs[prop.key] = FieldSpec(
            name=prop.key,
            annotation=python_type,
            nullable=bool(column.nullable) or python_type is Any,
        )

    for rel in mapper.relationships:
        if rel.uselist:
            specs[rel.key] = FieldSpec(rel.key, list, nullable=False, sequence=True)
        else:
            specs[rel.key] = FieldSpec(rel.key, rel.mapper.class_, nullable=True)

    return specs


def build_field_table(record_type: type) -> FieldTable:
    """Build the accessor table for a native record type.

    Args:
        record_type: Class of the records to be accessed.

    Returns:
        FieldTable describing every declared field.
    """
    mapper = sa_inspect(record_type, raiseerr=False)
    if isinstance(mapper, Mapper):
        return FieldTable(record_type, "sqlalchemy", _sqlalchemy_fields(mapper))

    if dataclasses.is_dataclass(record_type):
        hints = _type_hints(record_type)
        frozen = record_type.__dataclass_params__.frozen
        fields = {
            f.name: _spec_from_annotation(f.name, hints.get(f.name, Any), settable=not frozen)
            for f in dataclasses.fields(record_type)
        }
        return FieldTable(record_type, "dataclass", fields)

    if issubclass(record_type, BaseModel):
        frozen = bool(record_type.model_config.get("frozen", False))
        fields = {
            name: _spec_from_annotation(
                name, info.annotation, settable=not (frozen or bool(info.frozen))
            )
            for name, info in record_type.model_fields.items()
        }
        return FieldTable(record_type, "pydantic", fields)

    fields = {}
    for name, annotation in _type_hints(record_type).items():
        if name.startswith("_") or get_origin(annotation) is typing.ClassVar:
            continue
        fields[name] = _spec_from_annotation(name, annotation)
    for klass in record_type.__mro__:
        for name in getattr(klass, "__slots__", ()):
            if not name.startswith("_"):
                fields.setdefault(name, FieldSpec(name))

    return FieldTable(record_type, "plain", fields, dynamic=not fields)


# ============================================================================
# Value coercion
# ============================================================================


def _convert_scalar(name: str, target: type, value: Any) -> Any:
    """Apply the scalar conversions a transport-decoded value may need."""
    if target is bool:
        if isinstance(value, bool):
            return value
    elif isinstance(value, bool):
        pass
    elif target is int:
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError as e:
                raise UnsettableFieldError(name, f"{value!r} is not an integer") from e
    elif target is float:
        if isinstance(value, (int, float)):
            return float(value)
    elif target is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return normalize_id(value)

    raise UnsettableFieldError(
        name, f"value of type {type(value).__name__} is not compatible with {target.__name__}"
    )


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Check a value against a field's declared type, converting scalars.

    Args:
        spec: Declared field shape.
        value: Value about to be written.

    Returns:
        The value to store.

    Raises:
        UnsettableFieldError: If the value cannot be stored in the field.
    """
    if value is None:
        if spec.nullable:
            return None
        raise UnsettableFieldError(spec.name, "field is not nullable")

    target = spec.annotation
    if target is Any:
        return value

    origin = get_origin(target)
    if origin is not None:
        if isinstance(origin, type) and not isinstance(value, origin):
            raise UnsettableFieldError(
                spec.name, f"expected {origin.__name__}, got {type(value).__name__}"
            )
        return value

    if not isinstance(target, type):
        return value

    if target in _SCALAR_ZEROS:
        return _convert_scalar(spec.name, target, value)

    if not isinstance(value, target):
        raise UnsettableFieldError(
            spec.name, f"expected {target.__name__}, got {type(value).__name__}"
        )
    return value


# ============================================================================
# Accessors
# ============================================================================


class FieldAccessor(Protocol):
    """Capability interface for reading and writing named record fields."""

    def get(self, record: Any, name: str) -> Any: ...

    def get_sequence(self, record: Any, name: str) -> MutableSequence: ...

    def set(self, record: Any, name: str, value: Any) -> None: ...

    def is_nullable(self, record: Any, name: str) -> bool: ...

    def zero_value(self, record: Any, name: str) -> Any: ...

    def to_dict(self, record: Any) -> dict[str, Any]: ...


class MappingAccessor:
    """Field access for string-keyed mapping records."""

    def get(self, record: Mapping, name: str) -> Any:
        if name not in record:
            raise FieldNotFoundError(name)
        return record[name]

    def get_sequence(self, record: Mapping, name: str) -> MutableSequence:
        value = self.get(record, name)
        if not isinstance(value, MutableSequence):
            raise NotASequenceError(name)
        return value

    def set(self, record: Mapping, name: str, value: Any) -> None:
        if name not in record:
            raise FieldNotFoundError(name)
        if not isinstance(record, MutableMapping):
            raise UnsettableFieldError(name, "record is read-only")
        record[name] = value

    def is_nullable(self, record: Mapping, name: str) -> bool:
        return True

    def zero_value(self, record: Mapping, name: str) -> Any:
        current = self.get(record, name)
        return _SCALAR_ZEROS.get(type(current))

    def to_dict(self, record: Mapping) -> dict[str, Any]:
        return dict(record)


class NativeAccessor:
    """Field access for native records, driven by a FieldTable."""

    def __init__(self, table: FieldTable):
        self.table = table

    def get(self, record: Any, name: str) -> Any:
        self.table.lookup(record, name)
        try:
            return getattr(record, name)
        except AttributeError as e:
            raise FieldNotFoundError(name) from e

    def get_sequence(self, record: Any, name: str) -> MutableSequence:
        spec = self.table.lookup(record, name)
        value = self.get(record, name)

        # An unset list field behaves like an empty one
        if value is None and spec.sequence and spec.settable:
            self.set(record, name, [])
            value = self.get(record, name)

        if not isinstance(value, MutableSequence):
            raise NotASequenceError(name)
        return value

    def set(self, record: Any, name: str, value: Any) -> None:
        spec = self.table.lookup(record, name)
        if not spec.settable:
            raise UnsettableFieldError(name, "record is immutable")
        coerced = coerce_value(spec, value)
        try:
            setattr(record, name, coerced)
        except AttributeError as e:
            raise UnsettableFieldError(name, str(e)) from e

    def is_nullable(self, record: Any, name: str) -> bool:
        return self.table.lookup(record, name).nullable

    def zero_value(self, record: Any, name: str) -> Any:
        spec = self.table.lookup(record, name)
        if spec.nullable:
            return None
        if spec.annotation in _SCALAR_ZEROS:
            return _SCALAR_ZEROS[spec.annotation]
        if spec.sequence:
            return []
        raise UnsettableFieldError(name, "field has no zero value")

    def to_dict(self, record: Any) -> dict[str, Any]:
        kind = self.table.kind
        if kind == "pydantic":
            return record.model_dump()
        if kind == "dataclass":
            return dataclasses.asdict(record)
        if kind == "sqlalchemy":
            # Columns only: relationships may be lazy or cyclic
            mapper = sa_inspect(self.table.record_type)
            return {prop.key: getattr(record, prop.key) for prop in mapper.column_attrs}
        if self.table.dynamic:
            return {k: v for k, v in vars(record).items() if not k.startswith("_")}
        return {name: getattr(record, name, None) for name in self.table.fields}


# ============================================================================
# Registry
# ============================================================================


class AccessorRegistry:
    """Builds and caches accessors per record type.

    Register record types up front (e.g. when resources are configured) to
    surface unsupported shapes early. Unregistered types are registered on
    first access.
    """

    def __init__(self) -> None:
        self._tables: dict[type, FieldTable] = {}
        self._mapping = MappingAccessor()

    def register(self, record_type: type) -> FieldTable:
        """Build (once) and return the field table for a record type."""
        table = self._tables.get(record_type)
        if table is None:
            table = build_field_table(record_type)
            self._tables[record_type] = table
            logger.debug(
                f"Registered {table.kind} accessor for {record_type.__name__} "
                f"({len(table.fields)} fields)"
            )
        return table

    def accessor_for(self, record: Any) -> FieldAccessor:
        """Get the accessor matching a record's shape."""
        if isinstance(record, Mapping):
            return self._mapping
        return NativeAccessor(self.register(type(record)))

    def get_field(self, record: Any, name: str) -> Any:
        if record is None:
            raise FieldNotFoundError(name)
        return self.accessor_for(record).get(record, name)

    def get_sequence_field(self, record: Any, name: str) -> MutableSequence:
        if record is None:
            raise FieldNotFoundError(name)
        return self.accessor_for(record).get_sequence(record, name)

    def set_field(self, record: Any, name: str, value: Any) -> None:
        if record is None:
            raise FieldNotFoundError(name)
        self.accessor_for(record).set(record, name, value)

    def is_nullable(self, record: Any, name: str) -> bool:
        return self.accessor_for(record).is_nullable(record, name)

    def zero_value(self, record: Any, name: str) -> Any:
        return self.accessor_for(record).zero_value(record, name)

    def to_plain(self, value: Any) -> Any:
        """Convert records (recursively) into plain dicts and lists."""
        if value is None or isinstance(value, (str, int, float, bool)):
            return value
        if isinstance(value, Mapping):
            return {k: self.to_plain(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.to_plain(v) for v in value]
        if isinstance(value, type):
            return value
        if _is_structured_record(value):
            return self.to_plain(self.accessor_for(value).to_dict(value))
        # Anything else (datetimes, UUIDs, plain objects) is left to the JSON encoder
        return value


def _is_structured_record(value: Any) -> bool:
    if dataclasses.is_dataclass(value) or isinstance(value, BaseModel):
        return True
    return isinstance(sa_inspect(type(value), raiseerr=False), Mapper)


# Process default, used when no registry is injected
default_registry = AccessorRegistry()


def get_field(record: Any, name: str) -> Any:
    """Read a named field from a record."""
    return default_registry.get_field(record, name)


def get_sequence_field(record: Any, name: str) -> MutableSequence:
    """Read a named field that must hold a mutable sequence."""
    return default_registry.get_sequence_field(record, name)


def set_field(record: Any, name: str, value: Any) -> None:
    """Write a named field on a record."""
    default_registry.set_field(record, name, value)
