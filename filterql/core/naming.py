from __future__ import annotations

from typing import Any, List, Optional, Tuple

__all__ = [
    'DELIMITER',
    'MANY_PREFIX',
    'RESERVED_KEYS',
    'split_filter_key',
    'key_root',
    'nested_alias',
    'many_alias',
    'has_many_table_alias',
    'split_column_alias',
    'ensure_list',
]

DELIMITER = '__'
MANY_PREFIX = '__many__'

ORDER_KEY = '__order'
OFFSET_KEY = '__offset'
COUNT_KEY = '__count'
PARAMS_KEY = '__params'
RESERVED_KEYS = frozenset({ORDER_KEY, OFFSET_KEY, COUNT_KEY, PARAMS_KEY})


def split_filter_key(key: str) -> Tuple[str, Optional[str]]:
    """Split ``field__comparator`` at the last delimiter.

    Returns ``(field, None)`` when the key carries no comparator suffix.
    """
    key = str(key)
    idx = key.rfind(DELIMITER)
    if idx <= 0:
        return key, None
    return key[:idx], key[idx + len(DELIMITER):]


def key_root(key: str) -> str:
    """Field part of a filter key (everything before the last ``__``)."""
    return split_filter_key(key)[0]


def nested_alias(relation: str, field: str) -> str:
    return f"{relation}{DELIMITER}{field}"


def many_alias(relation: str) -> str:
    return f"{MANY_PREFIX}{relation}"


def has_many_table_alias(relation: str) -> str:
    """Table alias used inside the correlated has-many subquery."""
    return f"{DELIMITER}{relation}"


def split_column_alias(alias: str) -> Tuple[Optional[str], str]:
    """Split ``relation__field`` into ``(relation, field)``; ``(None, alias)`` otherwise."""
    idx = alias.rfind(DELIMITER)
    if idx <= 0:
        return None, alias
    return alias[:idx], alias[idx + len(DELIMITER):]


def ensure_list(value: Any) -> Optional[List[Any]]:
    """Wrap scalars into a list, preserving list inputs."""
    if value is None:
        return None
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset, range)):
        return list(value)
    return [value]
