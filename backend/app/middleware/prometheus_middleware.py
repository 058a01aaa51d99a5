"""
HTTP traffic metrics.

Paths are normalized before they become label values: numeric ids and
booking/user ULIDs collapse to ``:id``.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..monitoring.prometheus_metrics import prometheus_metrics

METRICS_PATH = "/metrics/prometheus"
_ULID_SEGMENT = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")


def normalize_endpoint(raw_path: str) -> str:
    """Collapse ids in a path to ``:id`` to keep label cardinality bounded."""
    return "/".join(
        ":id" if segment.isdigit() or _ULID_SEGMENT.match(segment) else segment
        for segment in raw_path.split("/")
    )


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        method = request.method
        endpoint = normalize_endpoint(request.url.path)

        with prometheus_metrics.http_in_flight(method, endpoint):
            started = time.perf_counter()
            response = await call_next(request)
            prometheus_metrics.record_http_request(
                method=method,
                endpoint=endpoint,
                duration=time.perf_counter() - started,
                status_code=response.status_code,
            )
        return response
