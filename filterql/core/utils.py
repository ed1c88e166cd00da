from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, NamedTuple, Optional, Tuple


def clamp(value: int, minimum: int, maximum: int) -> int:
    return sorted((minimum, value, maximum))[1]


def to_int_or(value: Any, default: int) -> int:
    """``int(value)`` for request parameters, ``default`` when absent or unparsable."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class Between(NamedTuple):
    """Inclusive range filter value: ``{'age': Between(18, 30)}``."""

    lower: Any
    upper: Any


def range_bounds(value: Any) -> Optional[Tuple[Any, Any]]:
    """Return ``(lower, upper)`` for range-like values, ``None`` otherwise.

    Python ranges are converted to inclusive bounds; an empty range has no
    bounds and yields ``None``.
    """
    if isinstance(value, Between):
        return value.lower, value.upper
    if isinstance(value, range):
        if len(value) == 0:
            return None
        return min(value), max(value)
    return None


def is_range(value: Any) -> bool:
    return isinstance(value, (Between, range))


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def dumps(payload: Any) -> str:
    """JSON encode a response payload; dates are ISO formatted, unknown objects stringified."""
    return json.dumps(payload, default=_json_default)


__all__ = ['clamp', 'to_int_or', 'Between', 'range_bounds', 'is_range', 'dumps']
