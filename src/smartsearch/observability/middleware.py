"""HTTP middleware: request ID binding, access logging and request metrics."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .metrics import http_request_duration_seconds, http_requests_total
from .request_id import REQUEST_ID_HEADER, bound_request_id, normalize_request_id

logger = get_logger(__name__)

# Health endpoints are polled constantly; keep them out of the access log
QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})


def _route_label(request: Request) -> str:
    """Route template (``/api/search/admin/reindex/{entity_type}``) rather than the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request ID per request and echoes it in the X-Request-ID header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
        path = request.url.path
        quiet = path in QUIET_PATHS

        with bound_request_id(request_id):
            if not quiet:
                logger.info("%s %s", request.method, path)

            start = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "Request failed after %.2fms: %s %s",
                    (time.perf_counter() - start) * 1000,
                    request.method,
                    path,
                )
                http_requests_total.labels(method=request.method, route=_route_label(request), status="500").inc()
                raise

            elapsed = time.perf_counter() - start
            route = _route_label(request)
            http_requests_total.labels(method=request.method, route=route, status=str(response.status_code)).inc()
            http_request_duration_seconds.labels(method=request.method, route=route).observe(elapsed)
            if not quiet:
                logger.info("Request completed: %s in %.2fms", response.status_code, elapsed * 1000)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
