from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from resource_browser.services.errors import ResourceQueryError

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("resource_browser.http")


def request_id_for(request: Request) -> str:
    """Return the id of ``request``, accepting a well-formed client id or minting one."""
    current = getattr(request.state, "request_id", None)
    if current:
        return current
    supplied = str(request.headers.get(REQUEST_ID_HEADER) or "").strip()
    request_id = supplied if _REQUEST_ID_RE.fullmatch(supplied) else uuid4().hex
    request.state.request_id = request_id
    return request_id


def resource_query_error_response(request: Request, exc: ResourceQueryError) -> JSONResponse:
    request_id = request_id_for(request)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    _LOG.log(
        level,
        "resource query failed resource=%s status=%s detail=%s request_id=%s",
        request.path_params.get("resource_name", "-"),
        exc.status_code,
        exc.detail,
        request_id,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": request_id},
        headers={REQUEST_ID_HEADER: request_id},
    )


def install_request_context(app: FastAPI) -> None:
    """Tag every request with an id, log its outcome and render query errors as JSON."""
    app.add_exception_handler(ResourceQueryError, resource_query_error_response)

    @app.middleware("http")
    async def _request_context_middleware(request: Request, call_next):
        request_id = request_id_for(request)
        started_at = perf_counter()
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store"
        response.headers[REQUEST_ID_HEADER] = request_id
        _LOG.info(
            "%s %s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started_at) * 1000.0,
            request_id,
        )
        return response
