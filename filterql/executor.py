"""Single entry point running parse -> generate -> execute -> reshape."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from .adapters import get_adapter
from .core.hydration import RowReshaper
from .core.parser import FilterParser
from .errors import FilterQLError, QueryExecutionError
from .sql.builders import SQLGenerator

logger = logging.getLogger(__name__)

# Generated SQL is fully literal; keep DBAPIs from treating '%' as a placeholder.
_EXECUTION_OPTIONS = {'no_parameters': True}


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    returned_count: int = 0
    offset: int = 0
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def failure(cls, message: str, offset: int = 0) -> 'QueryResult':
        return cls(rows=[], total=0, returned_count=0, offset=offset, error={'message': message})

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QueryRunner:
    """Compile and execute filters for one model of a :class:`FilterSchema`.

    The session is an ``AsyncSession`` (or anything exposing ``get_bind()``
    and ``await connection()`` the same way) bound to a PostgreSQL engine.
    """

    def __init__(self, schema: Any, model: Any):
        self.schema = schema
        self.model = model

    async def build_and_run(
        self,
        session: Any,
        filters: Mapping[str, Any] | None = None,
        *,
        offset: int = 0,
        limit: int = 500,
        safe: bool = False,
        whitelist: Iterable[str] = (),
    ) -> QueryResult:
        """Run ``filters`` and return rows plus paging information.

        Every :class:`FilterQLError` is turned into an error result with no
        rows; it never propagates to the caller.
        """
        try:
            dialect = session.get_bind().dialect
            adapter = get_adapter(dialect.name)
            quoter = adapter.quoter(dialect)
            meta = self.schema.get_meta(self.model)
            parsed = FilterParser(quoter).parse(filters, meta, safe=safe)
            generated = SQLGenerator(adapter, quoter).generate(
                parsed, meta, offset=offset, limit=limit, extra_fields=whitelist
            )

            conn = await session.connection()
            count_result = await self._execute(conn, generated.count_query)
            count_row = count_result.fetchone()
            total = int(count_row[0]) if count_row is not None and count_row[0] is not None else 0

            result = await self._execute(conn, generated.query)
            keys = list(result.keys())
            raw_rows = result.fetchall()
        except FilterQLError as exc:
            logger.debug("filterql: %s query rejected: %s", getattr(self.model, '__name__', self.model), exc.message)
            return QueryResult.failure(exc.message, offset)

        rows = RowReshaper(meta, generated.models).reshape_all(keys, raw_rows)
        return QueryResult(rows=rows, total=total, returned_count=len(rows), offset=offset)

    @staticmethod
    async def _execute(conn: Any, sql: str) -> Any:
        logger.debug("filterql: executing %s", sql)
        try:
            return await conn.exec_driver_sql(sql, execution_options=_EXECUTION_OPTIONS)
        except SQLAlchemyError as exc:
            logger.warning("filterql: query failed: %s", exc)
            raise QueryExecutionError() from exc


__all__ = ['QueryResult', 'QueryRunner']
