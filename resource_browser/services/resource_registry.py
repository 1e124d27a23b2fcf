from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Union

from sqlalchemy.inspection import inspect as sa_inspect

from resource_browser.schemas.resource_query import OrderClause
from resource_browser.services.errors import ConfigurationError, InvalidField, MalformedInput, ResourceNotFound
from resource_browser.services.field_types import FieldType, coerce_value, column_field_type

logger = logging.getLogger(__name__)

# A plain field name, or (association name, field names on the related model).
SearchField = Union[str, tuple[str, tuple[str, ...]]]

COMPOSITE_ID_SEPARATOR = ":"


@dataclass(frozen=True)
class Resource:
    name: str
    model: type
    search_fields: tuple[SearchField, ...] = ()
    ordering: tuple[OrderClause, ...] | None = None
    primary_keys: tuple[str, ...] | None = None
    index_query: Callable | None = None
    show_query: Callable | None = None


@dataclass(frozen=True)
class Association:
    name: str
    attribute: Any
    related: type


def normalize_resource_name(name: str) -> str:
    raw = (name or "").strip().replace("-", "_")
    if not raw:
        return ""
    chars: list[str] = []
    for index, ch in enumerate(raw):
        if ch.isupper() and index > 0 and raw[index - 1].isalnum() and raw[index - 1] != "_":
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


def columns_map(model: type) -> dict[str, Any]:
    mapper = sa_inspect(model)
    return {prop.key: prop.columns[0] for prop in mapper.column_attrs}


def fields(resource: Resource) -> list[tuple[str, FieldType]]:
    return [(name, column_field_type(column)) for name, column in columns_map(resource.model).items()]


def field_column(model: type, name: str) -> Any:
    column = columns_map(model).get(name)
    if column is None:
        raise InvalidField(name)
    return column


def field_type(model: type, name: str) -> FieldType:
    column = columns_map(model).get(name)
    if column is None:
        raise ConfigurationError(f'Model {model.__name__} has no field "{name}"')
    return column_field_type(column)


def association(model: type, name: str) -> Association:
    relationship = sa_inspect(model).relationships.get(name)
    if relationship is None:
        raise ConfigurationError(f'Model {model.__name__} has no association "{name}"')
    return Association(name=name, attribute=getattr(model, name), related=relationship.mapper.class_)


def primary_keys(resource: Resource) -> list[str]:
    if resource.primary_keys is not None:
        return list(resource.primary_keys)
    mapper = sa_inspect(resource.model)
    return [mapper.get_property_by_column(column).key for column in mapper.primary_key]


def search_fields(resource: Resource) -> list[SearchField]:
    return list(resource.search_fields)


def ordering(resource: Resource) -> list[OrderClause]:
    if resource.ordering is not None:
        return list(resource.ordering)
    return [OrderClause(field=name, dir="desc") for name in primary_keys(resource)]


def deserialize_id(resource: Resource, raw_id: str) -> Any:
    """Turn a raw id into a typed value, or a ``{key: value}`` mapping for composite keys.

    Composite ids carry one part per primary key, in key order, joined by ``:``.
    """
    keys = primary_keys(resource)
    if not keys:
        raise ConfigurationError(f'Resource "{resource.name}" has no primary key')
    text = str(raw_id if raw_id is not None else "").strip()
    if not text:
        raise MalformedInput("Empty identifier")
    if len(keys) == 1:
        return coerce_value(field_column(resource.model, keys[0]), text)
    parts = text.split(COMPOSITE_ID_SEPARATOR)
    if len(parts) != len(keys):
        raise MalformedInput(f'Identifier "{text}" must have {len(keys)} parts')
    return {key: coerce_value(field_column(resource.model, key), part) for key, part in zip(keys, parts)}


def _normalize_search_fields(raw: Iterable[Any]) -> tuple[SearchField, ...]:
    normalized: list[SearchField] = []
    for entry in raw:
        if isinstance(entry, str):
            normalized.append(entry)
            continue
        assoc_name, assoc_fields = entry
        if isinstance(assoc_fields, str):
            assoc_fields = [assoc_fields]
        normalized.append((str(assoc_name), tuple(str(item) for item in assoc_fields)))
    return tuple(normalized)


def _normalize_ordering(raw: Iterable[Any] | None) -> tuple[OrderClause, ...] | None:
    if raw is None:
        return None
    clauses: list[OrderClause] = []
    for entry in raw:
        if isinstance(entry, OrderClause):
            clauses.append(entry)
        else:
            direction, field_name = entry
            clauses.append(OrderClause(field=str(field_name), dir=str(direction).lower()))
    return tuple(clauses)


class ResourceRegistry:
    def __init__(self):
        self._resources: dict[str, Resource] = {}

    def register(
        self,
        model: type,
        *,
        name: str | None = None,
        search_fields: Iterable[Any] = (),
        ordering: Iterable[Any] | None = None,
        primary_keys: Iterable[str] | None = None,
        index_query: Callable | None = None,
        show_query: Callable | None = None,
    ) -> Resource:
        resource_name = normalize_resource_name(name or getattr(model, "__tablename__", None) or model.__name__)
        resource = Resource(
            name=resource_name,
            model=model,
            search_fields=_normalize_search_fields(search_fields),
            ordering=_normalize_ordering(ordering),
            primary_keys=tuple(primary_keys) if primary_keys is not None else None,
            index_query=index_query,
            show_query=show_query,
        )
        self._resources[resource_name] = resource
        return resource

    def discover(self, base) -> list[Resource]:
        """Register every mapped class of ``base`` that is not registered yet."""
        added = []
        for mapper in base.registry.mappers:
            table_name = getattr(mapper.class_, "__tablename__", None)
            if not table_name or normalize_resource_name(table_name) in self._resources:
                continue
            added.append(self.register(mapper.class_))
        return added

    def discover_modules(self, base, module_names: Iterable[str]) -> list[Resource]:
        """Import ``module_names`` so their models map onto ``base``, then discover them."""
        for module_name in module_names:
            try:
                importlib.import_module(module_name)
            except ImportError as exc:
                raise ConfigurationError(f'Cannot import resource module "{module_name}": {exc}') from exc
        added = self.discover(base)
        logger.info("discovered resources=%s", [resource.name for resource in added])
        return added

    def get(self, name: str) -> Resource:
        resource = self._resources.get(normalize_resource_name(name))
        if resource is None:
            raise ResourceNotFound(name)
        return resource

    def names(self) -> list[str]:
        return sorted(self._resources)


registry = ResourceRegistry()


def get_registry() -> ResourceRegistry:
    return registry
