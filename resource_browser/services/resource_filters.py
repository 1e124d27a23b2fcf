from __future__ import annotations

from typing import Any, Iterable, Mapping

from resource_browser.core.config import settings
from resource_browser.schemas.resource_query import OrderClause, SearchFilter
from resource_browser.services.resource_registry import Resource, fields, ordering

ORDER_DIRECTIONS = {"asc", "desc"}


def resolve_filters(params: Mapping[str, Any], resource: Resource) -> list[SearchFilter]:
    """Build equality filters from the parameters that name a field of the resource.

    Anything else in ``params`` (pagination, search box, ordering overrides)
    is ignored, as are empty values.
    """
    known = dict(fields(resource))
    resolved: list[SearchFilter] = []
    for name, value in params.items():
        if name not in known:
            continue
        text = "" if value is None else str(value)
        if text == "":
            continue
        resolved.append(SearchFilter(name=name, value=text, type=known[name]))
    return resolved


def _direction_or_none(raw: Any) -> str | None:
    text = str(raw or "").strip().lower()
    return text if text in ORDER_DIRECTIONS else None


def resolve_ordering(
    default: Iterable[OrderClause],
    field: str | None,
    direction: str | None,
    known_fields: Iterable[str],
) -> list[OrderClause]:
    field_name = str(field or "").strip()
    dir_token = _direction_or_none(direction)
    if not field_name or dir_token is None or field_name not in set(known_fields):
        return list(default)
    return [OrderClause(field=field_name, dir=dir_token)]


def ordering_from_params(resource: Resource, params: Mapping[str, Any]) -> list[OrderClause]:
    return resolve_ordering(
        ordering(resource),
        params.get(settings.ORDER_FIELD_PARAM),
        params.get(settings.ORDER_DIR_PARAM),
        [name for name, _ in fields(resource)],
    )
