"""Prometheus telemetry endpoint.

Mounted at the configured telemetry path (``/metrics`` by default) by
:func:`dmdb_api.main.create_app`.  In single-target mode the registry holds
the exporter itself, so every GET runs a full scrape cycle.
"""

from __future__ import annotations

from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from dmdb_api.dependencies import RuntimeDep


def telemetry(runtime: RuntimeDep) -> Response:
    """Return all registered metrics in text exposition format."""
    return Response(content=generate_latest(runtime.registry), media_type=CONTENT_TYPE_LATEST)
