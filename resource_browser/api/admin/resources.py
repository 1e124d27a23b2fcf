from __future__ import annotations

from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from resource_browser.db.session import get_db
from resource_browser.schemas.resource_query import ResourceListResponse, ResourceMeta
from resource_browser.services.count_cache import CountCache, get_count_cache
from resource_browser.services.resource_query import fetch_list, fetch_resource, list_resource, parse_page_request
from resource_browser.services.resource_registry import (
    ResourceRegistry,
    fields,
    get_registry,
    primary_keys,
    search_fields,
)
from resource_browser.services.storage import SessionExecutor

from .payloads import row_to_dict

router = APIRouter()


@router.get("", response_model=List[ResourceMeta])
def list_resources_meta(registry: ResourceRegistry = Depends(get_registry)):
    rows = []
    for name in registry.names():
        resource = registry.get(name)
        rows.append(
            ResourceMeta(
                name=resource.name,
                fields={field_name: kind.value for field_name, kind in fields(resource)},
                primary_keys=primary_keys(resource),
                search_fields=[entry if isinstance(entry, str) else list(entry) for entry in search_fields(resource)],
            )
        )
    return rows


@router.get("/{resource_name}", response_model=ResourceListResponse)
def list_rows(
    resource_name: str,
    request: Request,
    db: Session = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
    cache: CountCache = Depends(get_count_cache),
):
    resource = registry.get(resource_name)
    params = dict(request.query_params)
    page_request = parse_page_request(resource, params)
    total, rows = list_resource(
        request, resource, params, executor=SessionExecutor(db), cache=cache, page_request=page_request
    )
    return ResourceListResponse(
        total=total,
        page=page_request.page,
        per_page=page_request.per_page,
        rows=[row_to_dict(row) for row in rows],
    )


@router.get("/{resource_name}/by-ids")
def list_rows_by_ids(
    resource_name: str,
    ids: List[str] = Query(default=[]),
    db: Session = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, Any]:
    resource = registry.get(resource_name)
    rows = fetch_list(resource, ids, executor=SessionExecutor(db))
    return {"rows": [row_to_dict(row) for row in rows], "total": len(rows)}


@router.get("/{resource_name}/{row_id}")
def get_row(
    resource_name: str,
    row_id: str,
    request: Request,
    db: Session = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
) -> Any:
    resource = registry.get(resource_name)
    row = fetch_resource(request, resource, row_id, executor=SessionExecutor(db))
    if row is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return row_to_dict(row)
