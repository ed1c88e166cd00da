"""Literal and identifier quoting for generated SQL.

All user supplied values reach SQL text through :meth:`Quoter.quote`, which
delegates rendering to SQLAlchemy's PostgreSQL dialect. Identifiers are only
ever taken from model metadata and are always quoted.
"""
from __future__ import annotations

import math
from typing import Any

from sqlalchemy import literal
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.exc import CompileError


class Quoter:
    """Render Python values as PostgreSQL literals.

    Args:
        dialect: Optional live dialect from the executing engine. Only its
            ``standard_conforming_strings`` state is consulted; rendering
            always goes through a private ``PGDialect`` with the ``named``
            paramstyle, so ``%`` inside literals is never doubled.
    """

    def __init__(self, dialect: Any = None):
        self.dialect = PGDialect(paramstyle='named')
        # Server reports standard_conforming_strings=off -> double backslashes
        self.dialect._backslash_escapes = bool(getattr(dialect, '_backslash_escapes', False)) if dialect is not None else False
        self._preparer = self.dialect.identifier_preparer

    def quote(self, value: Any) -> str:
        if value is None:
            return 'NULL'
        if isinstance(value, bool):
            return 'TRUE' if value else 'FALSE'
        if isinstance(value, float) and not math.isfinite(value):
            if math.isnan(value):
                return "'NaN'::float"
            return "'Infinity'::float" if value > 0 else "'-Infinity'::float"
        try:
            return self._render(value)
        except (CompileError, NotImplementedError):
            return self._render(str(value))

    def quote_all(self, values) -> str:
        return ','.join(self.quote(v) for v in values)

    def quote_ident(self, name: str) -> str:
        return self._preparer.quote_identifier(str(name))

    def qualify(self, table: str, column: str) -> str:
        """Return ``"table"."column"``."""
        return f"{self.quote_ident(table)}.{self.quote_ident(column)}"

    def _render(self, value: Any) -> str:
        compiled = literal(value).compile(dialect=self.dialect, compile_kwargs={'literal_binds': True})
        return str(compiled)


default_quoter = Quoter()


def quote(value: Any) -> str:
    return default_quoter.quote(value)


def quote_ident(name: str) -> str:
    return default_quoter.quote_ident(name)


__all__ = ['Quoter', 'default_quoter', 'quote', 'quote_ident']
