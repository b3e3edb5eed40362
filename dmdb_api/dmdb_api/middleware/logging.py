"""Structured request-logging middleware for the exporter's HTTP surface."""

from __future__ import annotations

import logging
import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("dmdb_api.access")

# Query parameters whose values must be masked in log output.
_SENSITIVE_PARAMS: frozenset[str] = frozenset({"password", "user"})
_MASK: str = "***"


def _safe_query(request: Request) -> str | None:
    """Return the query string with sensitive parameter values masked."""
    if not request.url.query:
        return None
    parts: list[str] = []
    for key, value in request.query_params.multi_items():
        parts.append(f"{key}={_MASK if key.lower() in _SENSITIVE_PARAMS else value}")
    return "&".join(parts)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with method, path, status code and duration.

    Prometheus scrapes arrive every few seconds, so successful requests are
    logged at DEBUG; client errors at WARNING and server errors at ERROR.
    Probe requests carry ``target`` and ``module``, which makes the query
    string the most useful field when a scrape misbehaves.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.monotonic() - start) * 1000, 2)
            status_code = response.status_code if response is not None else 500

            log_payload: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "query": _safe_query(request),
                "status_code": status_code,
                "duration_ms": duration_ms,
                "client": request.client.host if request.client else None,
            }
            if status_code >= 500:
                logger.error("request completed", extra={"request": log_payload})
            elif status_code >= 400:
                logger.warning("request completed", extra={"request": log_payload})
            else:
                logger.debug("request completed", extra={"request": log_payload})
