from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.exc import CompileError, NoInspectionAvailable
from sqlalchemy.orm import MANYTOONE, ONETOMANY
from sqlalchemy.types import ARRAY, Boolean, Enum as SAEnum, Float, Integer, Numeric, String, TypeDecorator

from .core.declarations import ALL, Declaration, DeclarationDescriptor
from .core.metadata import ColumnMeta, ModelMeta, RelationKind, RelationMeta, ScalarType
from .errors import ConfigurationError
from .wrapper import FilterQL

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = ('created_at', 'updated_at')


class FilterTypeMeta(type):
    def __new__(mcls, name, bases, namespace):
        decls: Dict[str, Declaration] = {}
        for base in bases:
            decls.update(getattr(base, '__filterql_declarations__', {}) or {})
        for k, v in list(namespace.items()):
            if isinstance(v, DeclarationDescriptor):
                v.__set_name__(None, k)
                built = v.build()
                decls[built.kind] = built
        namespace['__filterql_declarations__'] = decls
        return super().__new__(mcls, name, bases, namespace)


class FilterType(metaclass=FilterTypeMeta):
    """Base class for per-model filter configuration.

    Example::

        @schema.type(model=Bucket)
        class BucketFilters(FilterType):
            interface = standard_interface('id', 'color', 'material', 'person', 'marbles')
            interface_nested = standard_interface_nested('id', 'color', 'material')
            whitelist = safe_fields('color', 'material')
            defaults = default_filters(marbles={'radius__lte': 10})
    """

    model: Optional[Type] = None  # user sets via subclass attribute or @schema.type


def _unwrap_type(sa_type: Any) -> Any:
    while isinstance(sa_type, TypeDecorator):
        sa_type = sa_type.impl
    return sa_type


def scalar_type_of(sa_type: Any) -> ScalarType:
    """Map a SQLAlchemy column type onto the scalar types known to the coercion layer."""
    sa_type = _unwrap_type(sa_type)
    if isinstance(sa_type, Boolean):
        return ScalarType.BOOLEAN
    if isinstance(sa_type, Integer):
        return ScalarType.INTEGER
    # Float is not a Numeric subclass on every SQLAlchemy release
    if isinstance(sa_type, (Numeric, Float)):
        return ScalarType.FLOAT
    if isinstance(sa_type, (String, SAEnum)):
        return ScalarType.STRING
    return ScalarType.OTHER


def column_meta(column: Any) -> ColumnMeta:
    """Build :class:`ColumnMeta` for a SQLAlchemy ``Column``."""
    sa_type = _unwrap_type(column.type)
    if not isinstance(sa_type, ARRAY):
        return ColumnMeta(name=column.name, type=scalar_type_of(sa_type))
    try:
        sql_type = str(sa_type.compile(dialect=PGDialect()))
    except (CompileError, NotImplementedError):
        sql_type = None
    return ColumnMeta(name=column.name, type=scalar_type_of(sa_type.item_type), is_array=True, sql_type=sql_type)


class FilterSchema:
    """Registry of filterable models.

    Metadata is built lazily on first use from the SQLAlchemy mapper of each
    model plus the declarations of its registered :class:`FilterType`, and is
    read-only afterwards. Registering another type drops the cache.

    Args:
        default_count: Page size used when ``__count`` is absent.
        max_count: Upper bound ``__count`` is clamped to.
    """

    def __init__(self, *, default_count: int = 500, max_count: int = 500):
        if max_count < 1:
            raise ConfigurationError('max_count must be at least 1')
        self.default_count = default_count
        self.max_count = max_count
        self.types: Dict[str, Type[FilterType]] = {}
        self._by_model: Dict[Any, Type[FilterType]] = {}
        self._meta: Dict[Any, ModelMeta] = {}

    def register(self, cls: Type[FilterType]):
        if cls.model is None:
            raise ConfigurationError(f"{cls.__name__} does not declare a model")
        self.types[cls.__name__] = cls
        self._by_model[cls.model] = cls
        self._meta.clear()
        return cls

    def type(self, *, model: Type):
        def deco(cls: Type[FilterType]):
            cls.model = model
            return self.register(cls)
        return deco

    def api(self, model: Type, session: Any) -> FilterQL:
        """Return a :class:`FilterQL` bound to ``model`` and ``session``."""
        return FilterQL(self, model, session)

    # --- metadata ------------------------------------------------------------
    def get_meta(self, model: Type) -> ModelMeta:
        """Return the metadata of ``model``, building it (and its relation targets) on demand.

        Raises:
            ConfigurationError: ``model`` is not a mapped class or its
                declarations reference unknown fields.
        """
        meta = self._meta.get(model)
        if meta is not None:
            return meta
        pending: List[Any] = []
        try:
            meta = self._shell(model, pending)
            while pending:
                self._link(pending.pop(), pending)
        except ConfigurationError:
            # discard the half built graph
            self._meta.clear()
            raise
        return meta

    def _declarations(self, model: Any) -> Dict[str, Declaration]:
        cls = self._by_model.get(model)
        return dict(getattr(cls, '__filterql_declarations__', {}) or {})

    def _shell(self, model: Any, pending: List[Any]) -> ModelMeta:
        """Phase one: columns and declared configuration, relations left empty."""
        try:
            mapper = sa_inspect(model)
        except NoInspectionAvailable:
            raise ConfigurationError(f"{getattr(model, '__name__', model)!r} is not a mapped model") from None
        table = mapper.local_table
        pk_cols = list(mapper.primary_key)
        if len(pk_cols) != 1:
            raise ConfigurationError(f"{model.__name__} must have exactly one primary key column")
        pk = pk_cols[0].name

        columns = {col.name: column_meta(col) for col in table.columns}
        fk_columns = {col.name for col in table.columns if col.foreign_keys}
        relation_names = [rel.key for rel in mapper.relationships if self._supported(rel)]
        decls = self._declarations(model)

        exposed = self._resolve_fields(
            model, decls.get('interface'), pk, columns, fk_columns, relation_names, nested=False
        )
        nested = self._resolve_fields(
            model, decls.get('interface_nested'), pk, columns, fk_columns, relation_names, nested=True
        )
        safe = decls.get('safe_fields')
        if safe is None:
            whitelist = exposed
        elif safe.meta['fields'] is ALL:
            whitelist = tuple(columns) + tuple(relation_names)
        else:
            whitelist = tuple(safe.meta['fields'])
        defaults = decls.get('default_filters')
        orders = decls.get('order')

        meta = ModelMeta(
            name=model.__name__,
            table_name=table.name,
            primary_key=pk,
            columns=columns,
            exposed_fields=exposed,
            exposed_fields_nested=nested,
            filter_whitelist=whitelist,
            default_filters=MappingProxyType(dict(defaults.meta['filters']) if defaults else {}),
            custom_order_expressions=MappingProxyType(dict(orders.meta['orders']) if orders else {}),
            model=model,
        )
        self._meta[model] = meta
        pending.append(model)
        logger.debug("filterql: built metadata for %s (table %s)", meta.name, meta.table_name)
        return meta

    def _link(self, model: Any, pending: List[Any]) -> None:
        """Phase two: resolve relations, creating shells for unseen targets."""
        meta = self._meta[model]
        for rel in sa_inspect(model).relationships:
            if not self._supported(rel):
                logger.debug("filterql: %s.%s is not a supported relation, skipped", meta.name, rel.key)
                continue
            target_model = rel.mapper.class_
            target = self._meta.get(target_model) or self._shell(target_model, pending)
            if rel.direction is MANYTOONE:
                kind = RelationKind.BELONGS_TO
                fk = next(iter(rel.local_columns)).name
            else:
                kind = RelationKind.HAS_MANY if rel.uselist else RelationKind.HAS_ONE
                fk = next(iter(rel.remote_side)).name
            meta.relations[rel.key] = RelationMeta(name=rel.key, kind=kind, target=target, foreign_key=fk)

    @staticmethod
    def _supported(rel: Any) -> bool:
        if rel.direction is MANYTOONE:
            return len(rel.local_columns) == 1
        if rel.direction is ONETOMANY:
            return len(rel.remote_side) == 1
        return False

    @staticmethod
    def _resolve_fields(
        model: Any,
        decl: Optional[Declaration],
        pk: str,
        columns: Dict[str, ColumnMeta],
        fk_columns: Iterable[str],
        relation_names: List[str],
        *,
        nested: bool,
    ) -> Tuple[str, ...]:
        if decl is None:
            return (pk,)
        opts = decl.meta
        excluded = set(opts.get('except_') or ())
        if opts['fields'] is ALL:
            names = [name for name in columns if name not in excluded]
            if not opts.get('timestamps'):
                names = [n for n in names if n not in TIMESTAMP_COLUMNS]
            if not opts.get('foreign_keys'):
                names = [n for n in names if n not in fk_columns]
            if opts.get('associations') and not nested:
                names.extend(r for r in relation_names if r not in excluded)
            return tuple(names)

        names = []
        for name in opts['fields']:
            if name in excluded or name in names:
                continue
            if name in relation_names:
                if nested:
                    raise ConfigurationError(
                        f"Nested interface of {model.__name__} cannot include association {name!r}"
                    )
            elif name not in columns:
                raise ConfigurationError(f"{model.__name__} has no field {name!r}")
            names.append(name)
        return tuple(names)


__all__ = ['FilterSchema', 'FilterType', 'FilterTypeMeta', 'column_meta', 'scalar_type_of']
