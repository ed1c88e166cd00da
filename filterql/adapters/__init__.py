from __future__ import annotations

import logging

from ..errors import ConfigurationError
from .base import BaseAdapter
from .postgres import PostgresAdapter

logger = logging.getLogger(__name__)


def get_adapter(dialect_name: str) -> BaseAdapter:
    """Return the adapter for ``dialect_name``.

    Raises:
        ConfigurationError: the engine is not PostgreSQL.
    """
    dn = (dialect_name or '').lower()
    if dn.startswith('postgres'):
        logger.info("filterql: using %s adapter for dialect %s", PostgresAdapter.name, dn)
        return PostgresAdapter()
    raise ConfigurationError(f"Unsupported database engine: {dialect_name or 'unknown'}")


__all__ = [
    'BaseAdapter',
    'PostgresAdapter',
    'get_adapter',
]
