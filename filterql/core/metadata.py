"""Read-only model metadata consumed by the filter parser and SQL builders.

Instances are produced once by :class:`filterql.registry.FilterSchema` when
models are registered and are never mutated while queries are processed, so
they can be shared freely across tasks and threads.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class ScalarType(Enum):
    INTEGER = 'integer'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    STRING = 'string'
    OTHER = 'other'


class RelationKind(Enum):
    BELONGS_TO = 'belongs_to'
    HAS_ONE = 'has_one'
    HAS_MANY = 'has_many'

    @property
    def single(self) -> bool:
        return self is not RelationKind.HAS_MANY


# Element casts for ARRAY[...] literals when the column's SQL type is unknown.
ARRAY_CASTS: Mapping[ScalarType, str] = MappingProxyType({
    ScalarType.INTEGER: '::integer[]',
    ScalarType.FLOAT: '::float[]',
    ScalarType.BOOLEAN: '::boolean[]',
    ScalarType.STRING: '::varchar[]',
    ScalarType.OTHER: '::text[]',
})


@dataclass(frozen=True)
class ColumnMeta:
    """A physical column.

    Attributes:
        name: Column name.
        type: Scalar type of the column, or of its elements for arrays.
        is_array: True for PostgreSQL array columns.
        sql_type: Compiled array type (e.g. ``VARCHAR(20)[]``) used for casts.
    """

    name: str
    type: ScalarType = ScalarType.OTHER
    is_array: bool = False
    sql_type: Optional[str] = None

    @property
    def array_cast(self) -> str:
        if self.sql_type:
            return f"::{self.sql_type}"
        return ARRAY_CASTS[self.type]


@dataclass(frozen=True, eq=False)
class RelationMeta:
    name: str
    kind: RelationKind
    target: 'ModelMeta'
    foreign_key: str


@dataclass(eq=False)
class ModelMeta:
    """Per-model configuration and introspected structure."""

    name: str
    table_name: str
    primary_key: str
    columns: Dict[str, ColumnMeta]
    relations: Dict[str, RelationMeta] = field(default_factory=dict)
    exposed_fields: Tuple[str, ...] = ()
    exposed_fields_nested: Tuple[str, ...] = ()
    filter_whitelist: Tuple[str, ...] = ()
    default_filters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    custom_order_expressions: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    model: Any = None

    def __repr__(self) -> str:
        return f"<ModelMeta {self.name} ({self.table_name})>"

    def column(self, name: str) -> Optional[ColumnMeta]:
        return self.columns.get(name)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def relation(self, name: str) -> Optional[RelationMeta]:
        return self.relations.get(name)

    def is_relation(self, name: str) -> bool:
        return name in self.relations

    def nested_columns(self) -> list[ColumnMeta]:
        """Columns selected when this model appears nested under another.

        Falls back to the primary key when no nested field resolves to a column.
        """
        out: list[ColumnMeta] = []
        for name in self.exposed_fields_nested:
            col = self.columns.get(name)
            if col is not None:
                out.append(col)
        if not out and self.primary_key in self.columns:
            out.append(self.columns[self.primary_key])
        return out


__all__ = [
    'ScalarType',
    'RelationKind',
    'ARRAY_CASTS',
    'ColumnMeta',
    'RelationMeta',
    'ModelMeta',
]
