"""FastAPI application entry-point for the DM database exporter."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dmdb_api import __version__
from dmdb_api.dependencies import ExporterRuntime
from dmdb_api.middleware.logging import RequestLoggingMiddleware
from dmdb_api.middleware.prometheus import PrometheusMiddleware
from dmdb_api.routers import landing, probe
from dmdb_api.routers import metrics as metrics_router
from dmdb_core.config import ExporterMode, Settings, load_settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle.

    The runtime is built by :func:`create_app` so that configuration errors
    surface before the server binds its socket.  On shutdown the
    single-target exporter is unregistered and its pool disposed.
    """
    runtime: ExporterRuntime = app.state.runtime
    logger.info(
        "Exporter ready (mode=%s, %d metric definition(s), telemetry at %s)",
        runtime.mode.value,
        len(runtime.definitions),
        runtime.settings.telemetry_path,
    )

    yield

    runtime.close()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, *, runtime: ExporterRuntime | None = None) -> FastAPI:
    """Construct and configure the FastAPI application.

    Parameters
    ----------
    settings:
        Process settings; loaded from the environment when omitted.
    runtime:
        Pre-built runtime.  When omitted one is built from *settings*,
        which loads the definition files and, in probe mode, the
        credential file.
    """
    if runtime is None:
        runtime = ExporterRuntime.from_settings(settings or load_settings())
    settings = runtime.settings

    app = FastAPI(
        title="DM DB Exporter",
        description="Prometheus exporter for DM databases.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.runtime = runtime

    known_paths = {"/", settings.telemetry_path}
    if runtime.mode is ExporterMode.PROBE:
        known_paths.add("/scrape")

    # -- Middleware (last added runs outermost) -------------------------------

    app.add_middleware(PrometheusMiddleware, known_paths=known_paths)
    app.add_middleware(RequestLoggingMiddleware)

    # -- Routers -------------------------------------------------------------

    app.add_api_route(
        settings.telemetry_path,
        metrics_router.telemetry,
        methods=["GET"],
        tags=["metrics"],
    )
    if runtime.mode is ExporterMode.PROBE:
        app.include_router(probe.router)
    app.include_router(landing.router)

    return app
