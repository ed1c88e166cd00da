from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple


class _All:
    """Sentinel selecting every column of a model."""

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return 'ALL'


ALL = _All()


@dataclass
class Declaration:
    """Internal, normalized declaration collected by :class:`FilterTypeMeta`.

    Attributes:
        name: The attribute name on the declaring type (e.g. ``interface``).
        kind: One of ``interface``, ``interface_nested``, ``safe_fields``,
            ``default_filters``, ``order``.
        meta: Options captured from the helper factory.
    """

    name: str
    kind: str
    meta: Dict[str, Any]


class DeclarationDescriptor:
    """Placeholder stored on ``FilterType`` subclasses by the helper factories."""

    def __init__(self, *, kind: str, **meta):
        self.kind = kind
        self.meta = dict(meta)
        self.name: str | None = None

    def __set_name__(self, owner, name):  # pragma: no cover - simple
        self.name = name

    def build(self) -> Declaration:
        return Declaration(name=self.name or '', kind=self.kind, meta=self.meta)


def _field_names(fields: Tuple[Any, ...]) -> Any:
    if len(fields) == 1 and fields[0] is ALL:
        return ALL
    if len(fields) == 1 and isinstance(fields[0], (list, tuple)):
        fields = tuple(fields[0])
    return tuple(str(f) for f in fields)


def standard_interface(
    *fields: Any,
    except_: Tuple[str, ...] = (),
    timestamps: bool = False,
    foreign_keys: bool = False,
    associations: bool = True,
) -> DeclarationDescriptor:
    """Declare the fields included at the top level of a response.

    Pass explicit names (columns and relations) or ``ALL``. With ``ALL`` the
    keyword options decide which columns are kept:

    - except_: names to leave out.
    - timestamps: keep ``created_at`` / ``updated_at``.
    - foreign_keys: keep foreign key columns.
    - associations: include every declared relation.

    Example::

        class BucketFilters(FilterType):
            interface = standard_interface('id', 'color', 'person', 'marbles')
    """
    return DeclarationDescriptor(
        kind='interface',
        fields=_field_names(fields),
        except_=tuple(except_),
        timestamps=timestamps,
        foreign_keys=foreign_keys,
        associations=associations,
    )


def standard_interface_nested(
    *fields: Any,
    except_: Tuple[str, ...] = (),
    timestamps: bool = False,
    foreign_keys: bool = False,
) -> DeclarationDescriptor:
    """Declare the fields selected when the model appears under another one.

    Nested fields are columns only; naming a relation here is a configuration
    error raised when the schema is built.
    """
    return DeclarationDescriptor(
        kind='interface_nested',
        fields=_field_names(fields),
        except_=tuple(except_),
        timestamps=timestamps,
        foreign_keys=foreign_keys,
        associations=False,
    )


def safe_fields(*fields: Any) -> DeclarationDescriptor:
    """Declare the filter keys accepted in safe mode."""
    return DeclarationDescriptor(kind='safe_fields', fields=_field_names(fields))


def default_filters(filters: Mapping[str, Any] | None = None, /, **kwargs: Any) -> DeclarationDescriptor:
    """Declare filters merged underneath every caller supplied filter.

    Example::

        defaults = default_filters(marbles={'radius__lte': 10})
    """
    merged = dict(filters or {})
    merged.update(kwargs)
    return DeclarationDescriptor(kind='default_filters', filters=merged)


def define_order(orders: Mapping[str, str] | None = None, /, **kwargs: str) -> DeclarationDescriptor:
    """Declare named SQL order expressions.

    ``self.`` refers to the model's table and ``$params[i]`` / ``$params[name]``
    are replaced with quoted values from the ``__params`` filter key::

        order = define_order(distance='abs(self.radius - $params[0])')
    """
    merged = dict(orders or {})
    merged.update(kwargs)
    return DeclarationDescriptor(kind='order', orders={str(k): str(v) for k, v in merged.items()})


__all__ = [
    'ALL',
    'Declaration',
    'DeclarationDescriptor',
    'standard_interface',
    'standard_interface_nested',
    'safe_fields',
    'default_filters',
    'define_order',
]
