from __future__ import annotations

from typing import Any, Sequence

from ..core.quoting import Quoter


class BaseAdapter:
    name = 'base'

    def quoter(self, dialect: Any = None) -> Quoter:
        return Quoter(dialect)

    def array_json(self, expr: str) -> str:
        """Wrap an array column so it comes back as one decodable value."""
        raise NotImplementedError

    def many_aggregate(self, fields: Sequence[str], order_by: str) -> str:
        """Aggregate child rows of a correlated subquery into one text value."""
        raise NotImplementedError
