from __future__ import annotations

import logging
from typing import Iterable, NamedTuple

from resource_browser.schemas.resource_query import OrderClause, SearchFilter
from resource_browser.services.errors import ConfigurationError
from resource_browser.services.query_spec import QuerySpec
from resource_browser.services.resource_registry import Resource, SearchField, primary_keys
from resource_browser.services.search_fields import select_search_fields
from resource_browser.services.search_terms import classify_search_term

logger = logging.getLogger(__name__)


class QueryPair(NamedTuple):
    unpaginated: QuerySpec
    paginated: QuerySpec


def build_query(
    resource: Resource,
    search_fields: Iterable[SearchField] | None,
    filters: Iterable[SearchFilter],
    search: str,
    per_page: int,
    ordering: Iterable[OrderClause],
    offset: int,
) -> QueryPair:
    if not primary_keys(resource):
        raise ConfigurationError(f'Resource "{resource.name}" has no primary key')

    query = QuerySpec(model=resource.model)
    declared = list(search_fields or [])
    term = (search or "").strip()
    if term and declared:
        term_type = classify_search_term(term)
        selected = select_search_fields(declared, resource.model, term_type)
        logger.debug("resource=%s search_type=%s search_fields=%s", resource.name, term_type.value, selected)
        query = query.with_search(term, selected)

    query = query.with_filters(filters)
    return QueryPair(unpaginated=query, paginated=query.paginate(ordering, per_page, offset))
