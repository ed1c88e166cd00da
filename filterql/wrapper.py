from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .core.naming import COUNT_KEY, OFFSET_KEY
from .core.utils import clamp, dumps, to_int_or
from .errors import NotFound
from .executor import QueryRunner
from .spoof import Spoof


class FilterQL:
    """Caller facing API for one model.

    Obtain instances through :meth:`FilterSchema.api`::

        api = schema.api(Bucket, session)
        await api.filter({'color': 'red', '__count': 20})
        return api.response()
    """

    def __init__(self, schema: Any, model: Any, session: Any):
        self.schema = schema
        self.model = model
        self.session = session
        self._data: Optional[List[Dict[str, Any]]] = None
        self._meta: Optional[Dict[str, Any]] = None
        self._whitelist: List[str] = []

    def __repr__(self) -> str:
        return f"<FilterQL: {getattr(self.model, '__name__', self.model)}>"

    def whitelist(self, *fields: Any) -> 'FilterQL':
        """Select ``fields`` in addition to the model's exposed fields."""
        for f in fields:
            if isinstance(f, (list, tuple)):
                self._whitelist.extend(str(x) for x in f)
            else:
                self._whitelist.append(str(f))
        return self

    async def filter(
        self,
        filters: Mapping[str, Any] | None = None,
        meta: Mapping[str, Any] | None = None,
        safe: bool = False,
    ) -> 'FilterQL':
        """Run ``filters`` and store the resulting data and meta.

        ``__offset`` defaults to 0. ``__count`` defaults to the schema's
        ``default_count`` and is clamped to ``[1, max_count]``.
        """
        filters = dict(filters or {})
        offset = max(0, to_int_or(filters.pop(OFFSET_KEY, None), 0))
        count = clamp(
            to_int_or(filters.pop(COUNT_KEY, None), self.schema.default_count),
            1,
            self.schema.max_count,
        )
        result = await QueryRunner(self.schema, self.model).build_and_run(
            self.session,
            filters,
            offset=offset,
            limit=count,
            safe=safe,
            whitelist=self._whitelist,
        )
        self._data = result.rows
        self._meta = {
            'total': result.total,
            'offset': result.offset,
            'count': result.returned_count,
            'error': result.error,
        }
        self._meta.update(meta or {})
        return self

    async def safe_filter(
        self,
        filters: Mapping[str, Any] | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> 'FilterQL':
        """Like :meth:`filter`, accepting only the model's safe fields."""
        return await self.filter(filters, meta, safe=True)

    async def fetch(self, id: Any, meta: Mapping[str, Any] | None = None) -> 'FilterQL':
        """Filter by primary key; sets a not-found error when nothing matches."""
        pk = self.schema.get_meta(self.model).primary_key
        await self.filter({pk: id}, meta)
        if self._meta['total'] == 0:
            self._meta['error'] = {'message': NotFound(self.model.__name__, pk, id).message}
        return self

    @property
    def data(self) -> Optional[List[Dict[str, Any]]]:
        return self._data

    @property
    def meta(self) -> Optional[Dict[str, Any]]:
        return self._meta

    def data_json(self) -> str:
        return dumps(self._data)

    def meta_json(self) -> str:
        return dumps(self._meta)

    def to_dict(self) -> Dict[str, Any]:
        return {'meta': self._meta, 'data': self._data}

    def response(self) -> str:
        return dumps(self.to_dict())

    # --- canned responses ----------------------------------------------------
    def spoof(self, data: Any = None, meta: Mapping[str, Any] | None = None) -> str:
        return Spoof(data, meta).spoof()

    def spoof_models(self, instances: Any, meta: Mapping[str, Any] | None = None) -> str:
        """Response built from already loaded ORM instances, shaped like :meth:`filter` output."""
        return Spoof(instances, meta, schema=self.schema, whitelist=self._whitelist).spoof_models()

    def invalid(self, fields: Any) -> str:
        return dumps({
            'meta': {
                'total': 0,
                'offset': 0,
                'count': 0,
                'error': {'message': 'invalid', 'fields': fields},
            },
            'data': [],
        })

    def reject(self, message: str = 'Access denied') -> str:
        return dumps({
            'meta': {
                'total': 0,
                'offset': 0,
                'count': 0,
                'error': {'message': message},
            },
            'data': [],
        })


__all__ = ['FilterQL']
