from __future__ import annotations

from typing import Sequence

from .base import BaseAdapter


class PostgresAdapter(BaseAdapter):
    name = 'postgres'

    def array_json(self, expr: str) -> str:
        return f"array_to_json({expr})"

    def many_aggregate(self, fields: Sequence[str], order_by: str) -> str:
        # Rows are joined as composite text: (v1,v2),(v3,v4)
        return f"string_agg(ROW({', '.join(fields)})::text, ',' ORDER BY {order_by})"
