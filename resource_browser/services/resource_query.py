from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from sqlalchemy import select, tuple_

from resource_browser.core.config import settings
from resource_browser.schemas.resource_query import PageRequest
from resource_browser.services.count_cache import CountCache, cached_total_count, get_count_cache
from resource_browser.services.errors import ConfigurationError, MalformedInput
from resource_browser.services.query_assembler import build_query
from resource_browser.services.query_hooks import apply_hook, hook_options, post_process
from resource_browser.services.resource_filters import ordering_from_params, resolve_filters
from resource_browser.services.resource_registry import Resource, deserialize_id, primary_keys, search_fields
from resource_browser.services.search_terms import is_id
from resource_browser.services.storage import SessionExecutor

logger = logging.getLogger(__name__)


def _positive_int_param(params: Mapping[str, Any], key: str, default: int) -> int:
    raw = params.get(key)
    text = "" if raw is None else str(raw).strip()
    if not text:
        return default
    if not is_id(text):
        raise MalformedInput(f'Parameter "{key}" must be a positive integer')
    return int(text)


def parse_page_request(resource: Resource, params: Mapping[str, Any]) -> PageRequest:
    return PageRequest(
        page=_positive_int_param(params, settings.PAGE_PARAM, 1),
        per_page=_positive_int_param(params, settings.PER_PAGE_PARAM, settings.DEFAULT_PER_PAGE),
        search=str(params.get(settings.SEARCH_PARAM) or "").strip(),
        filters=resolve_filters(params, resource),
        ordering=ordering_from_params(resource, params),
    )


def list_resource(
    context: Any,
    resource: Resource,
    params: Mapping[str, Any],
    *,
    executor: SessionExecutor,
    cache: CountCache | None = None,
    page_request: PageRequest | None = None,
) -> tuple[int, list[Any]]:
    """Fetch one page of ``resource`` and the total size of the searched, filtered set.

    Callers that already parsed ``params`` pass the result as ``page_request``.
    """
    if page_request is None:
        page_request = parse_page_request(resource, params)
    pair = build_query(
        resource,
        search_fields(resource),
        page_request.filters,
        page_request.search,
        page_request.per_page,
        page_request.ordering,
        page_request.offset,
    )
    logger.debug(
        "list resource=%s page=%s per_page=%s filters=%s",
        resource.name,
        page_request.page,
        page_request.per_page,
        [item.name for item in page_request.filters],
    )

    hooked = apply_hook(resource.index_query, context, resource, pair.paginated.to_select())
    options = hook_options(hooked)
    records = post_process(hooked, executor.execute_all(hooked.query, options))

    eligible = page_request.search == "" and not page_request.filters
    total = cached_total_count(
        resource.name,
        eligible,
        pair.unpaginated,
        options,
        executor=executor,
        cache=cache if cache is not None else get_count_cache(),
    )
    return total, records


def _primary_key_conditions(resource: Resource, typed_id: Any) -> list[Any]:
    model = resource.model
    if isinstance(typed_id, dict):
        return [getattr(model, key) == value for key, value in typed_id.items()]
    return [getattr(model, primary_keys(resource)[0]) == typed_id]


def fetch_resource(context: Any, resource: Resource, raw_id: str, *, executor: SessionExecutor) -> Any | None:
    stmt = select(resource.model).where(*_primary_key_conditions(resource, deserialize_id(resource, raw_id)))
    hooked = apply_hook(resource.show_query, context, resource, stmt)
    record = executor.execute_one(hooked.query, hook_options(hooked))
    if record is None:
        return None
    return post_process(hooked, record)


def fetch_list(resource: Resource, ids: Iterable[Any] | None, *, executor: SessionExecutor) -> list[Any]:
    raw_ids = [str(item).strip() for item in ids or [] if item is not None and str(item).strip()]
    if not raw_ids:
        return []
    keys = primary_keys(resource)
    if not keys:
        raise ConfigurationError(f'Resource "{resource.name}" has no primary key')

    model = resource.model
    typed_ids = [deserialize_id(resource, raw) for raw in raw_ids]
    if len(keys) == 1:
        condition = getattr(model, keys[0]).in_(typed_ids)
    else:
        columns = tuple_(*[getattr(model, key) for key in keys])
        condition = columns.in_([tuple(item[key] for key in keys) for item in typed_ids])
    return executor.execute_all(select(model).where(condition))
