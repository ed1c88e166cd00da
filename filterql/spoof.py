"""Build API responses around caller supplied data instead of a query."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import inspect as sa_inspect

from .core.utils import dumps


class Spoof:
    """Wrap ``data`` in the standard ``{meta, data}`` response shape.

    Args:
        data: Rows (dicts) for :meth:`spoof`, or ORM instances for :meth:`spoof_models`.
        meta: Overrides merged over the default meta.
        schema: :class:`FilterSchema` used to look up exposed fields of instances.
        whitelist: Extra top-level fields kept by :meth:`spoof_models`.
    """

    def __init__(
        self,
        data: Any = None,
        meta: Mapping[str, Any] | None = None,
        *,
        schema: Any = None,
        whitelist: Iterable[str] = (),
    ):
        self.data = [] if data is None else data
        self.meta = self.default_meta()
        self.meta.update(meta or {})
        self.schema = schema
        self.whitelist = list(whitelist)

    def default_meta(self) -> Dict[str, Any]:
        try:
            size = len(self.data)
        except TypeError:
            size = 1
        return {'total': size, 'count': size, 'offset': 0, 'error': None}

    def spoof(self, data: Any = None) -> str:
        return dumps({'meta': self.meta, 'data': self.data if data is None else data})

    def spoof_models(self) -> str:
        return self.spoof(self.prepared_data())

    # --- ORM instances -------------------------------------------------------
    def prepared_data(self) -> List[Dict[str, Any]]:
        instances = self.data if isinstance(self.data, (list, tuple)) else [self.data]
        out: List[Dict[str, Any]] = []
        for instance in instances:
            meta = self.schema.get_meta(type(instance))
            allowed = list(meta.exposed_fields) + self.whitelist
            row = self.attributes(instance)
            row.update(self.loaded_associations(instance))
            out.append({k: v for k, v in row.items() if k in allowed})
        return out

    @staticmethod
    def attributes(instance: Any) -> Dict[str, Any]:
        state = sa_inspect(instance)
        mapper = state.mapper
        out: Dict[str, Any] = {}
        for column in mapper.local_table.columns:
            prop = mapper.get_property_by_column(column)
            if prop.key in state.unloaded:
                continue
            out[column.name] = getattr(instance, prop.key)
        return out

    def loaded_associations(self, instance: Any) -> Dict[str, Any]:
        """Nested fields of relations already loaded on ``instance``; nothing is lazy loaded."""
        state = sa_inspect(instance)
        out: Dict[str, Any] = {}
        for rel in state.mapper.relationships:
            if rel.key in state.unloaded:
                continue
            target = getattr(instance, rel.key)
            if target is None:
                out[rel.key] = None
                continue
            allowed = self.schema.get_meta(rel.mapper.class_).exposed_fields_nested
            if rel.uselist:
                out[rel.key] = [self._nested(item, allowed) for item in target]
            else:
                out[rel.key] = self._nested(target, allowed)
        return out

    def _nested(self, instance: Any, allowed: Iterable[str]) -> Dict[str, Any]:
        attrs = self.attributes(instance)
        return {k: attrs.get(k) for k in allowed}


def spoof(data: Any = None, meta: Optional[Mapping[str, Any]] = None) -> str:
    return Spoof(data, meta).spoof()


__all__ = ['Spoof', 'spoof']
