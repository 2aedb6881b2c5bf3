"""Request correlation and HTTP metrics middleware."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .context import start_request
from .logging_config import get_logger
from .metrics import http_request_duration_seconds, http_requests_total

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
# Probes are counted but not logged
QUIET_PATHS = frozenset({"/health", "/metrics"})


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Open a request context, time the request and echo its id.

    An incoming X-Request-ID is honoured so ids can be traced across the
    frontend and this service.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        ctx = start_request(request.headers.get(REQUEST_ID_HEADER))
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised")
            http_requests_total.labels(
                method=request.method, route=_route_template(request), status="500"
            ).inc()
            raise

        elapsed = time.perf_counter() - started
        route = _route_template(request)
        http_requests_total.labels(
            method=request.method, route=route, status=str(response.status_code)
        ).inc()
        http_request_duration_seconds.labels(method=request.method, route=route).observe(elapsed)

        if request.url.path not in QUIET_PATHS:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed * 1000, 2),
                    "org_id": ctx.org_id,
                    "user_id": ctx.user_id,
                },
            )

        response.headers[REQUEST_ID_HEADER] = ctx.request_id
        return response
