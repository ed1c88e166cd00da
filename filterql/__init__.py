"""filterql public API and lightweight lazy exports.

This __init__ avoids importing the registry (and with it SQLAlchemy's ORM
machinery) at import time so that model modules can import declaration
helpers from here without circular imports.

Exposes:
- Lazy attributes: FilterSchema, FilterType, FilterQL, QueryRunner, QueryResult
- Declaration helpers: ALL, standard_interface, standard_interface_nested,
  safe_fields, default_filters, define_order
- Filter values: Between
- Errors: FilterQLError and subclasses
"""
from __future__ import annotations

from .core.declarations import (
    ALL,
    default_filters,
    define_order,
    safe_fields,
    standard_interface,
    standard_interface_nested,
)
from .core.utils import Between
from .errors import (
    ConfigurationError,
    FilterQLError,
    MetadataError,
    NotFound,
    QueryExecutionError,
    UnsupportedComparator,
    UnsupportedFilter,
)


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    if name in {'FilterSchema', 'FilterType'}:
        return getattr(_importlib.import_module(__name__ + '.registry'), name)
    if name == 'FilterQL':
        return getattr(_importlib.import_module(__name__ + '.wrapper'), name)
    if name in {'QueryRunner', 'QueryResult'}:
        return getattr(_importlib.import_module(__name__ + '.executor'), name)
    raise AttributeError(name)


__all__ = [
    'FilterSchema', 'FilterType', 'FilterQL', 'QueryRunner', 'QueryResult',
    'ALL', 'standard_interface', 'standard_interface_nested', 'safe_fields', 'default_filters', 'define_order',
    'Between',
    'FilterQLError', 'ConfigurationError', 'UnsupportedFilter', 'UnsupportedComparator',
    'MetadataError', 'QueryExecutionError', 'NotFound',
]
