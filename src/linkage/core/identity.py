"""Identity utilities for transport-decoded ids.

Ids arrive from JSON as int, float or str while records store them as
native ints, strings or UUIDs. Comparisons happen on a canonical string
form:
- normalize_id: canonical string form of a single id
- normalize_ids: canonical set for membership checks
- is_zero_id: unset foreign key detection

The canonical form is only ever used for comparison and repository lookups.
Callers store the raw value.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def normalize_id(value: Any) -> str:
    """Compute canonical string form of an id.

    Integral floats lose their fractional part so a JSON-decoded ``10.0``
    matches a native ``10``. Booleans render lowercase.

    Args:
        value: Raw id as received or stored.

    Returns:
        Canonical string.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def normalize_ids(values: Iterable[Any]) -> set[str]:
    """Canonical id set for membership checks."""
    return {normalize_id(v) for v in values}


def is_zero_id(value: Any) -> bool:
    """Check whether a foreign key value means "no related record"."""
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str)):
        return not value
    return False
