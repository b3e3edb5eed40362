"""Prometheus middleware instrumenting the exporter's own HTTP handlers.

Records request counts and latency on the default registry, so the
series show up on the telemetry path next to the process collectors.

Paths outside the application's routes are folded into ``"other"`` to keep
label cardinality bounded when scanners probe random URLs.
"""

from __future__ import annotations

import time
from collections.abc import Iterable

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from dmdb_core import EXPORTER_SUBSYSTEM, NAMESPACE

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests served by the exporter, by path and status code.",
    ["path", "code"],
    namespace=NAMESPACE,
    subsystem=EXPORTER_SUBSYSTEM,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "Latency of HTTP requests served by the exporter, in seconds.",
    ["path"],
    namespace=NAMESPACE,
    subsystem=EXPORTER_SUBSYSTEM,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

OTHER_PATH = "other"


def normalise_path(path: str, known_paths: frozenset[str]) -> str:
    """Return *path* itself when it is a known route, else ``"other"``."""
    return path if path in known_paths else OTHER_PATH


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Record HTTP request rate, status codes and latency."""

    def __init__(self, app: ASGIApp, known_paths: Iterable[str] = ()) -> None:
        super().__init__(app)
        self._known_paths = frozenset(known_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = normalise_path(request.url.path, self._known_paths)

        start = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start

        HTTP_REQUESTS_TOTAL.labels(path=path, code=str(response.status_code)).inc()
        HTTP_REQUEST_DURATION.labels(path=path).observe(duration)

        return response
