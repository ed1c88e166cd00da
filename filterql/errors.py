"""Exception types raised by the filterql core.

Every fatal category is converted into the uniform error result by
:meth:`filterql.executor.QueryRunner.build_and_run`; callers of the wrapper
never see these unless the metadata layer itself is broken.
"""
from __future__ import annotations


class FilterQLError(Exception):
    """Base class for all filterql errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(FilterQLError):
    """Unsupported database engine or invalid model declaration."""


class UnsupportedFilter(FilterQLError):
    """A filter key does not resolve to a column or declared relation."""

    def __init__(self, key: str, message: str | None = None):
        super().__init__(message or f'Filter "{key}" not supported.')
        self.key = key


class UnsupportedComparator(FilterQLError):
    """Unknown comparator suffix; the single filter entry is dropped."""

    def __init__(self, comparator: str):
        super().__init__(f"Invalid comparator: {comparator}")
        self.comparator = comparator


class MetadataError(FilterQLError):
    """Model metadata lookup failed while generating SQL."""


class QueryExecutionError(FilterQLError):
    """Execution of the data or count statement failed."""

    def __init__(self, message: str = 'Query failed'):
        super().__init__(message)


class NotFound(FilterQLError):
    """Single id lookup returned no rows."""

    def __init__(self, model_name: str, key: str, id):
        super().__init__(f"{model_name} with {key}: {id} does not exist")


__all__ = [
    'FilterQLError',
    'ConfigurationError',
    'UnsupportedFilter',
    'UnsupportedComparator',
    'MetadataError',
    'QueryExecutionError',
    'NotFound',
]
