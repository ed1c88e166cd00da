"""Filter parsing: nested filter hashes -> SQL condition fragments.

A filter specification maps keys to values::

    {
        'color': 'red',                     # color = 'red'
        'radius__lte': 10,                  # radius <= 10
        'marbles': {'color__not': 'clear'}, # conditions on a relation
        '__order': 'radius,DESC',
        '__params': ['abc'],                # values for custom order templates
    }

Relation keys are only resolved at the top level; nested specifications may
address the target model's columns but not its relations.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import UnsupportedComparator, UnsupportedFilter
from .comparison import Comparator, Comparison
from .conversions import BOOLEANS, to_int
from .metadata import ColumnMeta, ModelMeta, RelationKind, ScalarType
from .naming import (
    COUNT_KEY,
    OFFSET_KEY,
    ORDER_KEY,
    PARAMS_KEY,
    RESERVED_KEYS,
    has_many_table_alias,
    key_root,
    split_filter_key,
)
from .quoting import Quoter, default_quoter
from .utils import is_range, range_bounds

logger = logging.getLogger(__name__)

_SELF_REF = re.compile(r'\bself\.')
_PARAM_REF = re.compile(r'\$params\[([\w-]+)\]')
_DIRECTIONS = ('ASC', 'DESC')

# Filter values are looser than column text: 1/0 and yes/no are accepted too.
_FILTER_BOOLEANS = dict(BOOLEANS, **{'1': True, 'yes': True, 'y': True, '0': False, 'no': False, 'n': False})


@dataclass
class ParsedFilters:
    """Intermediate filter tree handed to the SQL builders."""

    main: List[str] = field(default_factory=list)
    main_order: Optional[str] = None
    has_many: Dict[str, List[str]] = field(default_factory=dict)
    has_many_order: Dict[str, Optional[str]] = field(default_factory=dict)
    belongs_to: Dict[str, List[str]] = field(default_factory=dict)
    belongs_to_order: Dict[str, Optional[str]] = field(default_factory=dict)


def normalize_order(raw: Any) -> tuple[str, str]:
    """Coerce an ``__order`` value into ``(field, direction)``.

    Accepts ``"field,DIR"`` or ``[field, DIR]``; the direction defaults to
    ``ASC`` and anything other than ``ASC``/``DESC`` is normalized to ``ASC``.
    """
    if isinstance(raw, str):
        parts = raw.split(',')
    elif isinstance(raw, (list, tuple)):
        parts = ['' if p is None else str(p) for p in raw]
    else:
        parts = []
    while len(parts) < 2:
        parts.append('')
    name = parts[0].strip()
    direction = parts[1].strip().upper()
    if direction not in _DIRECTIONS:
        direction = 'ASC'
    return name, direction


class FilterParser:
    def __init__(self, quoter: Quoter | None = None):
        self.quoter = quoter or default_quoter

    def parse(
        self,
        filters: Mapping[str, Any] | None,
        model: ModelMeta,
        *,
        safe: bool = False,
        is_nested: bool = False,
        table_alias: str | None = None,
    ) -> ParsedFilters:
        """Parse ``filters`` against ``model``.

        Args:
            filters: Filter specification. Not mutated.
            model: Metadata of the model being filtered.
            safe: Restrict top-level keys to ``model.filter_whitelist``.
            is_nested: True when parsing the filters of a relation; disables
                relation resolution, default filters and custom orders.
            table_alias: Table reference used to qualify columns. Defaults to
                the model's table name.

        Raises:
            UnsupportedFilter: a key does not resolve to a column or relation,
                or (safe mode) is not whitelisted.
        """
        filters = {str(k): v for k, v in (filters or {}).items()}
        table = table_alias or model.table_name

        if not is_nested:
            if safe:
                self._check_whitelist(filters, model)
            merged = dict(model.default_filters)
            merged.update(filters)
            filters = merged

        params = filters.pop(PARAMS_KEY, None)
        has_order = ORDER_KEY in filters
        order_raw = filters.pop(ORDER_KEY, None)
        filters.pop(OFFSET_KEY, None)
        filters.pop(COUNT_KEY, None)

        self._validate_keys(filters, model, is_nested)

        result = ParsedFilters()
        if has_order:
            result.main_order = self._order_clause(order_raw, model, table, params, is_nested)

        for key, value in filters.items():
            name, suffix = split_filter_key(key)
            try:
                comparator = Comparator.parse(suffix)
            except UnsupportedComparator:
                logger.debug("filterql: skipping %r, unknown comparator %r", key, suffix)
                continue

            relation = model.relation(name) if not is_nested and suffix is None else None
            if relation is not None:
                self._parse_relation(key, value, relation, safe, result)
                continue

            column = model.column(name)
            if column is None:
                logger.debug("filterql: skipping %r, comparator on a relation", key)
                continue
            try:
                result.main.extend(
                    self.column_conditions(comparator, value, self.quoter.qualify(table, name), column)
                )
            except UnsupportedComparator as exc:
                logger.debug("filterql: skipping %r: %s", key, exc.message)
        return result

    # --- validation ----------------------------------------------------------
    @staticmethod
    def _check_whitelist(filters: Mapping[str, Any], model: ModelMeta) -> None:
        allowed = set(model.filter_whitelist)
        for key in filters:
            if key in RESERVED_KEYS:
                continue
            if key_root(key) not in allowed:
                raise UnsupportedFilter(key)

    @staticmethod
    def _validate_keys(filters: Mapping[str, Any], model: ModelMeta, is_nested: bool) -> None:
        for key in filters:
            root = key_root(key)
            if model.has_column(root):
                continue
            if not is_nested and model.is_relation(root):
                continue
            raise UnsupportedFilter(key)

    # --- relations -----------------------------------------------------------
    def _parse_relation(self, key: str, value: Any, relation, safe: bool, result: ParsedFilters) -> None:
        if value is None:
            value = {}
        if not isinstance(value, Mapping):
            raise UnsupportedFilter(key, f'Filter "{key}" must be a hash of filters.')
        if relation.kind is RelationKind.HAS_MANY:
            alias = has_many_table_alias(relation.name)
        else:
            alias = relation.name
        nested = self.parse(value, relation.target, safe=safe, is_nested=True, table_alias=alias)
        if relation.kind is RelationKind.HAS_MANY:
            result.has_many[relation.name] = nested.main
            result.has_many_order[relation.name] = nested.main_order
        else:
            result.belongs_to[relation.name] = nested.main
            result.belongs_to_order[relation.name] = nested.main_order

    # --- ordering ------------------------------------------------------------
    def _order_clause(
        self,
        raw: Any,
        model: ModelMeta,
        table: str,
        params: Any,
        is_nested: bool,
    ) -> Optional[str]:
        name, direction = normalize_order(raw)
        if not is_nested and name in model.custom_order_expressions:
            expression = self.expand_order_template(model.custom_order_expressions[name], table, params)
            return f"({expression}) {direction}"
        if not model.has_column(name):
            return None
        return f"{self.quoter.qualify(table, name)} {direction}"

    def expand_order_template(self, template: str, table: str, params: Any) -> str:
        """Substitute ``self.`` and ``$params[...]`` placeholders in a custom order."""
        expression = _SELF_REF.sub(lambda _m: f"{self.quoter.quote_ident(table)}.", template)

        def _param(match: re.Match) -> str:
            ref = match.group(1)
            if isinstance(params, Mapping):
                value = params.get(ref)
            elif isinstance(params, (list, tuple)):
                idx = to_int(ref)
                value = params[idx] if 0 <= idx < len(params) else None
            else:
                value = None
            return self.quoter.quote('' if value is None else str(value))

        return _PARAM_REF.sub(_param, expression)

    # --- columns -------------------------------------------------------------
    def column_conditions(self, comparator: Comparator, value: Any, field_sql: str, column: ColumnMeta) -> List[str]:
        """Render the condition(s) for one column filter entry."""
        if comparator.null_check:
            return [Comparison(comparator, None, field_sql, column, self.quoter).sql]
        if value is None:
            if comparator is Comparator.NOT:
                return [f"{field_sql} IS NOT NULL"]
            return [f"{field_sql} IS NULL"]
        if column.type is ScalarType.BOOLEAN and not column.is_array:
            return self._boolean_conditions(comparator, value, field_sql)
        if comparator is Comparator.IS and is_range(value):
            bounds = range_bounds(value)
            if bounds is None:
                return ['FALSE']
            lower, upper = bounds
            return [
                Comparison(Comparator.GTE, lower, field_sql, column, self.quoter).sql,
                Comparison(Comparator.LTE, upper, field_sql, column, self.quoter).sql,
            ]
        if (
            comparator in (Comparator.IS, Comparator.NOT)
            and isinstance(value, (list, tuple, set, frozenset))
        ):
            comparator = Comparator.IN if comparator is Comparator.IS else Comparator.NOT_IN
        return [Comparison(comparator, value, field_sql, column, self.quoter).sql]

    @staticmethod
    def to_boolean(value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            return _FILTER_BOOLEANS.get(value.strip().lower())
        return None

    def _boolean_conditions(self, comparator: Comparator, value: Any, field_sql: str) -> List[str]:
        if comparator not in (Comparator.IS, Comparator.NOT):
            raise UnsupportedComparator(comparator.value)
        flag = self.to_boolean(value)
        if flag is None:
            logger.warning("filterql: ignoring non-boolean value %r for %s", value, field_sql)
            return []
        negation = 'NOT ' if comparator is Comparator.NOT else ''
        return [f"{field_sql} IS {negation}{'TRUE' if flag else 'FALSE'}"]


__all__ = ['FilterParser', 'ParsedFilters', 'normalize_order']
