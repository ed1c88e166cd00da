from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence

from .conversions import coerce_column, decode_many
from .metadata import ModelMeta
from .naming import DELIMITER, MANY_PREFIX, split_column_alias


class RowReshaper:
    """Turn flat result rows into nested dicts.

    Column names drive the shape:
      - ``__many__<relation>``: has-many aggregate, decoded into a list of dicts
      - a root column name: coerced and kept at the top level
      - ``<relation>__<field>``: nested under ``<relation>``
        (known relation names are matched first, so a field may contain ``__``)

    Root column names are checked before splitting, so a column whose own name
    contains ``__`` is never mistaken for a nested field.
    """

    def __init__(self, meta: ModelMeta, models: Mapping[str, ModelMeta] | None = None):
        self.meta = meta
        self.models = dict(models or {})
        # longest first: "owner__home" wins over "owner" for "owner__home__x"
        self._relations = sorted(set(self.models) | set(meta.relations), key=len, reverse=True)

    def _target(self, relation: str) -> ModelMeta | None:
        target = self.models.get(relation)
        if target is None:
            rel = self.meta.relation(relation)
            target = rel.target if rel is not None else None
        return target

    def _split(self, name: str):
        for relation in self._relations:
            prefix = relation + DELIMITER
            if name.startswith(prefix) and len(name) > len(prefix):
                return relation, name[len(prefix):]
        return split_column_alias(name)

    def reshape(self, keys: Sequence[str], row: Sequence[Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name, value in zip(keys, row):
            if name.startswith(MANY_PREFIX):
                relation = name[len(MANY_PREFIX):]
                target = self._target(relation)
                out[relation] = decode_many(value, target.nested_columns() if target is not None else [])
                continue
            if self.meta.has_column(name):
                out[name] = coerce_column(value, self.meta.column(name))
                continue
            relation, field = self._split(name)
            if relation is None:
                out[name] = value
                continue
            target = self._target(relation)
            nested = out.setdefault(relation, {})
            nested[field] = coerce_column(value, target.column(field) if target is not None else None)
        return out

    def reshape_all(self, keys: Iterable[str], rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
        keys = list(keys)
        return [self.reshape(keys, row) for row in rows]


__all__ = ['RowReshaper']
