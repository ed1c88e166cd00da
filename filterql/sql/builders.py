from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..adapters.base import BaseAdapter
from ..core.metadata import ColumnMeta, ModelMeta, RelationKind, RelationMeta
from ..core.naming import has_many_table_alias, many_alias, nested_alias
from ..core.parser import ParsedFilters
from ..core.quoting import Quoter, default_quoter
from ..errors import MetadataError

# Centralized SQL builders: parsed filters + metadata -> data and count statements.


@dataclass
class GeneratedSQL:
    query: str
    count_query: str
    # relation name -> target metadata, consumed by the row reshaper
    models: Dict[str, ModelMeta] = field(default_factory=dict)


class SQLGenerator:
    def __init__(self, adapter: BaseAdapter, quoter: Quoter | None = None):
        self.adapter = adapter
        self.quoter = quoter or default_quoter

    # --- helpers -------------------------------------------------------------
    def _ident(self, name: str) -> str:
        return self.quoter.quote_ident(name)

    def _qualify(self, table: str, column: str) -> str:
        return self.quoter.qualify(table, column)

    def _column_expr(self, table: str, column: ColumnMeta) -> str:
        expr = self._qualify(table, column.name)
        if column.is_array:
            return self.adapter.array_json(expr)
        return expr

    def partition_fields(
        self,
        meta: ModelMeta,
        extra_fields: Iterable[str] = (),
    ) -> Tuple[List[ColumnMeta], List[RelationMeta], List[RelationMeta]]:
        """Split exposed fields into plain columns, single relations and has-many relations.

        Raises:
            MetadataError: a field is neither a relation nor a column.
        """
        columns: List[ColumnMeta] = []
        singles: List[RelationMeta] = []
        many: List[RelationMeta] = []
        seen: set[str] = set()
        for name in list(meta.exposed_fields) + list(extra_fields):
            if name in seen:
                continue
            seen.add(name)
            relation = meta.relation(name)
            if relation is not None:
                (many if relation.kind is RelationKind.HAS_MANY else singles).append(relation)
                continue
            column = meta.column(name)
            if column is None:
                raise MetadataError(f"{meta.name} has no field {name!r}")
            columns.append(column)
        return columns, singles, many

    def _join(self, meta: ModelMeta, relation: RelationMeta) -> str:
        target = relation.target
        alias = relation.name
        if relation.kind is RelationKind.BELONGS_TO:
            on = f"{self._qualify(meta.table_name, relation.foreign_key)} = {self._qualify(alias, target.primary_key)}"
        else:
            on = f"{self._qualify(alias, relation.foreign_key)} = {self._qualify(meta.table_name, meta.primary_key)}"
        return f"LEFT JOIN {self._ident(target.table_name)} AS {self._ident(alias)} ON {on}"

    def _single_select(self, relation: RelationMeta) -> List[str]:
        alias = relation.name
        return [
            f"{self._column_expr(alias, col)} AS {self._ident(nested_alias(alias, col.name))}"
            for col in relation.target.nested_columns()
        ]

    def _many_select(self, meta: ModelMeta, relation: RelationMeta, parsed: ParsedFilters) -> str:
        target = relation.target
        alias = has_many_table_alias(relation.name)
        fields = [self._qualify(alias, col.name) for col in target.nested_columns()]
        order_by = parsed.has_many_order.get(relation.name) or f"{self._qualify(alias, target.primary_key)} ASC"
        fk = self._qualify(alias, relation.foreign_key)
        conditions = [f"{fk} IS NOT NULL", f"{fk} = {self._qualify(meta.table_name, meta.primary_key)}"]
        conditions.extend(parsed.has_many.get(relation.name) or [])
        return (
            f"(SELECT {self.adapter.many_aggregate(fields, order_by)} "
            f"FROM {self._ident(target.table_name)} AS {self._ident(alias)} "
            f"WHERE {' AND '.join(conditions)}) AS {self._ident(many_alias(relation.name))}"
        )

    def _filter_relations(self, meta: ModelMeta, parsed: ParsedFilters, *, with_order: bool) -> List[RelationMeta]:
        out: List[RelationMeta] = []
        for name in parsed.belongs_to:
            if parsed.belongs_to[name] or (with_order and parsed.belongs_to_order.get(name)):
                relation = meta.relation(name)
                if relation is None:
                    raise MetadataError(f"{meta.name} has no relation {name!r}")
                out.append(relation)
        return out

    @staticmethod
    def _where(meta: ModelMeta, parsed: ParsedFilters) -> Optional[str]:
        conditions = list(parsed.main)
        for nested in parsed.belongs_to.values():
            conditions.extend(nested)
        if not conditions:
            return None
        return ' AND '.join(conditions)

    # --- statements ----------------------------------------------------------
    def generate(
        self,
        parsed: ParsedFilters,
        meta: ModelMeta,
        *,
        offset: int = 0,
        limit: int = 500,
        extra_fields: Iterable[str] = (),
    ) -> GeneratedSQL:
        """Build the data and count statements for ``meta``.

        Args:
            parsed: Output of :meth:`FilterParser.parse` for ``meta``.
            offset: Rows to skip, already validated by the caller.
            limit: Page size, already clamped by the caller.
            extra_fields: Ad hoc fields selected in addition to the exposed ones.
        """
        table = meta.table_name
        columns, singles, many = self.partition_fields(meta, extra_fields)

        select: List[str] = [f"{self._column_expr(table, col)} AS {self._ident(col.name)}" for col in columns]
        joins: List[str] = []
        joined: set[str] = set()
        models: Dict[str, ModelMeta] = {}

        for relation in singles:
            select.extend(self._single_select(relation))
            joins.append(self._join(meta, relation))
            joined.add(relation.name)
            models[relation.name] = relation.target
        for relation in self._filter_relations(meta, parsed, with_order=True):
            if relation.name not in joined:
                joins.append(self._join(meta, relation))
                joined.add(relation.name)
        for relation in many:
            select.append(self._many_select(meta, relation, parsed))
            models[relation.name] = relation.target

        if not select:
            raise MetadataError(f"{meta.name} exposes no fields")

        where = self._where(meta, parsed)
        orders = [parsed.main_order] if parsed.main_order else []
        orders.extend(order for order in parsed.belongs_to_order.values() if order)

        parts = [f"SELECT {', '.join(select)}", f"FROM {self._ident(table)}"]
        parts.extend(joins)
        if where:
            parts.append(f"WHERE {where}")
        if orders:
            parts.append(f"ORDER BY {', '.join(orders)}")
        parts.append(f"LIMIT {int(limit)} OFFSET {int(offset)}")
        query = ' '.join(parts)

        count_parts = [
            f"SELECT COUNT({self._qualify(table, meta.primary_key)})",
            f"FROM {self._ident(table)}",
        ]
        count_parts.extend(self._join(meta, r) for r in self._filter_relations(meta, parsed, with_order=False))
        if where:
            count_parts.append(f"WHERE {where}")
        count_query = ' '.join(count_parts)

        return GeneratedSQL(query=query, count_query=count_query, models=models)


__all__ = ['GeneratedSQL', 'SQLGenerator']
