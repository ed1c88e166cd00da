"""Type coercion of raw column values.

Values reach this module either as PostgreSQL text (composite-row fields,
array elements) or already decoded by the driver (asyncpg returns ints,
bools and ``array_to_json`` strings). Both are accepted.
"""
from __future__ import annotations

import re
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .decoding import decode_array, decode_composite_rows, decode_json_array
from .metadata import ColumnMeta, ScalarType

__all__ = ['BOOLEANS', 'coerce', 'coerce_value', 'coerce_column', 'to_int', 'to_float', 'decode_many']

BOOLEANS: Mapping[str, bool] = MappingProxyType({
    't': True,
    'true': True,
    'f': False,
    'false': False,
})

_ARRAY_BOUNDS = re.compile(r'\[-?\d+:-?\d+\]=')
_INT_PREFIX = re.compile(r'\s*([+-]?\d+)')
_FLOAT_PREFIX = re.compile(r'\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)')


def to_int(raw: str) -> int:
    """Permissive base-10 parse: leading digits win, no digits -> 0."""
    m = _INT_PREFIX.match(raw)
    return int(m.group(1)) if m else 0


def to_float(raw: str) -> float:
    m = _FLOAT_PREFIX.match(raw)
    return float(m.group(1)) if m else 0.0


def coerce_value(raw: Any, type_: ScalarType) -> Any:
    """Coerce a single scalar. ``None`` stays ``None``."""
    if raw is None:
        return None
    if type_ is ScalarType.INTEGER:
        if isinstance(raw, str):
            return to_int(raw)
        if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
            return int(raw)
        return raw
    if type_ is ScalarType.FLOAT:
        if isinstance(raw, str):
            return to_float(raw)
        if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
            return float(raw)
        return raw
    if type_ is ScalarType.BOOLEAN:
        if isinstance(raw, str):
            # unrecognised strings are returned as given
            return BOOLEANS.get(raw.strip().lower(), raw)
        return raw
    return raw


def _array_items(raw: Any) -> Optional[List[Any]]:
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, str):
        stripped = raw.lstrip()
        if stripped.startswith('[') and not _ARRAY_BOUNDS.match(stripped):
            return decode_json_array(stripped)
        return decode_array(stripped)
    return None


def coerce(raw: Any, type_: ScalarType, is_array: bool = False) -> Any:
    """Coerce a raw column value, decoding array encodings first."""
    if raw is None:
        return None
    if not is_array:
        return coerce_value(raw, type_)
    items = _array_items(raw)
    if items is None:
        return raw
    return [coerce_value(item, type_) for item in items]


def coerce_column(raw: Any, column: Optional[ColumnMeta]) -> Any:
    if column is None:
        return raw
    return coerce(raw, column.type, column.is_array)


def decode_many(raw: Optional[str], columns: Iterable[ColumnMeta]) -> List[Dict[str, Any]]:
    """Decode a has-many aggregate into a list of typed dicts.

    Fields are matched to ``columns`` positionally, in declaration order.
    """
    cols = list(columns)
    out: List[Dict[str, Any]] = []
    for row in decode_composite_rows(raw):
        out.append({col.name: coerce(value, col.type, col.is_array) for col, value in zip(cols, row)})
    return out
