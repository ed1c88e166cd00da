from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..errors import UnsupportedComparator
from .metadata import ColumnMeta
from .naming import ensure_list
from .quoting import Quoter, default_quoter


class Comparator(Enum):
    IS = 'is'
    NOT = 'not'
    GT = 'gt'
    GTE = 'gte'
    LT = 'lt'
    LTE = 'lte'
    CONTAINS = 'contains'
    ICONTAINS = 'icontains'
    IN = 'in'
    NOT_IN = 'not_in'
    IS_NULL = 'is_null'
    NOT_NULL = 'not_null'
    INTERSECTS = 'intersects'
    NOT_INTERSECTS = 'not_intersects'

    @classmethod
    def parse(cls, name: Optional[str]) -> 'Comparator':
        """Resolve a key suffix; a missing suffix means ``is``."""
        if name is None:
            return cls.IS
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedComparator(name) from None

    @property
    def multi(self) -> bool:
        return self in MULTI_VALUE

    @property
    def null_check(self) -> bool:
        return self in (Comparator.IS_NULL, Comparator.NOT_NULL)


MULTI_VALUE = frozenset({
    Comparator.IN,
    Comparator.NOT_IN,
    Comparator.INTERSECTS,
    Comparator.NOT_INTERSECTS,
})

# Templates for plain columns. {field} is a qualified identifier, {value} a
# quoted literal, {values} a comma separated list of quoted literals.
SCALAR_TEMPLATES: Mapping[Comparator, str] = MappingProxyType({
    Comparator.IS: '{field} = {value}',
    Comparator.NOT: '{field} <> {value}',
    Comparator.GT: '{field} > {value}',
    Comparator.GTE: '{field} >= {value}',
    Comparator.LT: '{field} < {value}',
    Comparator.LTE: '{field} <= {value}',
    Comparator.CONTAINS: "{field} LIKE '%' || {value} || '%'",
    Comparator.ICONTAINS: "{field} ILIKE '%' || {value} || '%'",
    Comparator.IN: '{field} IN ({values})',
    Comparator.NOT_IN: '{field} NOT IN ({values})',
    Comparator.IS_NULL: '{field} IS NULL',
    Comparator.NOT_NULL: '{field} IS NOT NULL',
})

# Templates for array columns. Scalar comparators apply element-wise through
# ANY(...), with the operator mirrored because ANY must sit on the right.
ARRAY_TEMPLATES: Mapping[Comparator, str] = MappingProxyType({
    Comparator.IS: '{value} = ANY({field})',
    Comparator.NOT: 'NOT ({value} = ANY({field}))',
    Comparator.GT: '{value} < ANY({field})',
    Comparator.GTE: '{value} <= ANY({field})',
    Comparator.LT: '{value} > ANY({field})',
    Comparator.LTE: '{value} >= ANY({field})',
    Comparator.CONTAINS: '{value} = ANY({field})',
    Comparator.ICONTAINS: (
        'EXISTS (SELECT 1 FROM unnest({field}) AS "__element" '
        "WHERE \"__element\" ILIKE '%' || {value} || '%')"
    ),
    Comparator.IN: '{field} @> ARRAY[{values}]{cast}',
    Comparator.NOT_IN: 'NOT {field} @> ARRAY[{values}]{cast}',
    Comparator.INTERSECTS: '{field} && ARRAY[{values}]{cast}',
    Comparator.NOT_INTERSECTS: 'NOT {field} && ARRAY[{values}]{cast}',
    Comparator.IS_NULL: '{field} IS NULL',
    Comparator.NOT_NULL: '{field} IS NOT NULL',
})


def is_valid_comparator(name: str) -> bool:
    try:
        Comparator.parse(name)
    except UnsupportedComparator:
        return False
    return True


class Comparison:
    """A single rendered SQL condition.

    Raises:
        UnsupportedComparator: the comparator has no template for this kind
            of column (e.g. ``intersects`` on a non-array column).
    """

    def __init__(
        self,
        comparator: Comparator,
        value: Any,
        field: str,
        column: ColumnMeta,
        quoter: Quoter | None = None,
    ):
        self.comparator = comparator
        self.value = value
        self.field = field
        self.column = column
        self._quoter = quoter or default_quoter
        self.sql = self._render()

    def __str__(self) -> str:
        return self.sql

    def __repr__(self) -> str:
        return f"<Comparison {self.sql}>"

    def _render(self) -> str:
        templates = ARRAY_TEMPLATES if self.column.is_array else SCALAR_TEMPLATES
        template = templates.get(self.comparator)
        if template is None:
            raise UnsupportedComparator(self.comparator.value)
        if self.comparator.multi:
            values = ensure_list(self.value) or []
            if not values and not self.column.is_array:
                # IN () is not valid SQL
                return 'FALSE' if self.comparator is Comparator.IN else 'TRUE'
            return template.format(
                field=self.field,
                values=self._quoter.quote_all(values),
                cast=self.column.array_cast,
            )
        return template.format(field=self.field, value=self._quoter.quote(self.value))


__all__ = [
    'Comparator',
    'MULTI_VALUE',
    'SCALAR_TEMPLATES',
    'ARRAY_TEMPLATES',
    'Comparison',
    'is_valid_comparator',
]
