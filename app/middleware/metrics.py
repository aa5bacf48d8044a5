"""
Per-request Prometheus instrumentation.

Every request except the scrape itself is counted, timed and tracked while
in flight. Object keys in ``/api/files/...`` paths are replaced by ``{key}``
so label cardinality stays bounded by the number of routes.
"""
import time
from typing import Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.metrics import (
    api_request_duration_seconds,
    api_requests_in_progress,
    api_requests_total,
)

FILES_PREFIX = "/api/files/"
FILE_ACTIONS = ("access", "pin")
UNTRACKED_PATHS = frozenset({"/metrics"})


def route_label(path: str) -> str:
    """
    Examples:
        /api/files/3f2a.../report.pdf -> /api/files/{key}
        /api/files/3f2a.../report.pdf/pin -> /api/files/{key}/pin
        /api/quota -> /api/quota
    """
    if not path.startswith(FILES_PREFIX):
        return path

    rest = path[len(FILES_PREFIX):]
    head, _, action = rest.rpartition("/")
    if head and action in FILE_ACTIONS:
        return f"{FILES_PREFIX}{{key}}/{action}"
    return f"{FILES_PREFIX}{{key}}"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records api_requests_* for each handled request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        labels: Dict[str, str] = {
            "method": request.method,
            "endpoint": route_label(request.url.path),
        }
        in_progress = api_requests_in_progress.labels(**labels)
        in_progress.inc()

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            api_request_duration_seconds.labels(**labels).observe(time.perf_counter() - started)
            api_requests_total.labels(status=status_code, **labels).inc()
            in_progress.dec()
