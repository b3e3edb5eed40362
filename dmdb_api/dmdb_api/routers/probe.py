"""Multi-target probe endpoint.

``GET /scrape?target=host:port&module=name`` scrapes the named database
with the credentials of ``[client.<module>]`` and returns the default
registry's metrics followed by that target's metrics.  Every request gets
its own exporter, registry and connection pool; nothing is shared between
concurrent probes except the read-only definitions and credential store.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from dmdb_api.dependencies import RuntimeDep
from dmdb_core.errors import ConnectError, TargetResolutionError
from dmdb_core.metrics.collector import Exporter
from dmdb_core.probe.resolver import resolve_target

logger = logging.getLogger(__name__)

router = APIRouter(tags=["probe"])


@router.get("/scrape")
def scrape(runtime: RuntimeDep, target: str = "", module: str = "") -> Response:
    """Scrape one target on demand.

    Resolution failures (bad port, unknown module, missing credentials)
    return ``400`` with the reason as plain text.  A database that is down
    is not an HTTP error: the body reports ``dmdb_up 0``.
    """
    settings = runtime.settings
    if runtime.credentials is None:
        return PlainTextResponse("probe mode is not enabled\n", status_code=404)

    try:
        resolved = resolve_target(
            target,
            module,
            runtime.credentials,
            driver=settings.driver,
            options=settings.connect_options,
        )
    except TargetResolutionError as exc:
        logger.info("Error parsing target, target: %s, err: %s", target, exc)
        return PlainTextResponse(str(exc), status_code=400)

    try:
        exporter = Exporter.from_settings(resolved.url(), runtime.definitions, settings)
    except ConnectError as exc:
        logger.error("Unable to open database for target %s: %s", target, exc)
        return PlainTextResponse(str(exc), status_code=500)

    registry = CollectorRegistry()
    registry.register(exporter)
    try:
        body = generate_latest(runtime.registry) + generate_latest(registry)
    finally:
        exporter.close()

    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
