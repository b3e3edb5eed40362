"""Process-wide exporter state shared by the HTTP handlers.

Everything here is built once when the application is created and is
read-only afterwards: the settings, the validated metric definitions, and
either the single-target :class:`Exporter` (registered on the registry) or
the probe-mode :class:`CredentialStore`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends, Request
from prometheus_client import REGISTRY, CollectorRegistry

from dmdb_core.config import ExporterMode, Settings
from dmdb_core.loader.credentials import CredentialStore
from dmdb_core.loader.definition_loader import load_all_definitions
from dmdb_core.metrics.collector import Exporter
from dmdb_core.models.definition import MetricDefinition

logger = logging.getLogger(__name__)


class ExporterRuntime:
    """Startup-time state of one exporter process.

    Parameters
    ----------
    settings:
        Frozen process settings.
    definitions:
        Metric definitions scraped for every target.
    registry:
        Registry rendered on the telemetry path.  The single-target
        exporter is registered here.
    credentials:
        Credential store used to resolve probe requests.  Required in
        probe mode, ignored otherwise.
    """

    def __init__(
        self,
        settings: Settings,
        definitions: Sequence[MetricDefinition],
        *,
        registry: CollectorRegistry = REGISTRY,
        credentials: CredentialStore | None = None,
    ) -> None:
        self.settings = settings
        self.definitions = tuple(definitions)
        self.registry = registry
        self.credentials = credentials
        self.exporter: Exporter | None = None

        if settings.data_source_name is not None:
            self.exporter = Exporter.from_settings(
                settings.data_source_name.get_secret_value(),
                self.definitions,
                settings,
            )
            registry.register(self.exporter)
            logger.info("Single-target mode: scraping %s", self.exporter.database.masked_dsn)
        else:
            if credentials is None:
                raise ValueError("probe mode requires a credential store")
            logger.info("Probe mode: %d credential section(s) available", len(credentials.sections()))

    @classmethod
    def from_settings(cls, settings: Settings, *, registry: CollectorRegistry = REGISTRY) -> ExporterRuntime:
        """Load definitions (and credentials in probe mode) as configured.

        Raises
        ------
        DefinitionFileError, DefinitionError
            If a definitions file is unreadable or invalid.
        CredentialFileError
            If probe mode is selected and the credential file is unusable.
        ConnectError
            If the single-target DSN cannot be turned into an engine.
        """
        definitions = load_all_definitions(settings.default_metrics, settings.custom_metrics)
        credentials = None
        if settings.mode is ExporterMode.PROBE:
            credentials = CredentialStore.from_file(settings.config_cnf)
        return cls(settings, definitions, registry=registry, credentials=credentials)

    @property
    def mode(self) -> ExporterMode:
        return self.settings.mode

    def close(self) -> None:
        """Unregister and close the single-target exporter, if any."""
        if self.exporter is None:
            return
        self.registry.unregister(self.exporter)
        self.exporter.close()
        self.exporter = None


def get_runtime(request: Request) -> ExporterRuntime:
    """Return the :class:`ExporterRuntime` attached to the application."""
    return request.app.state.runtime


RuntimeDep = Annotated[ExporterRuntime, Depends(get_runtime)]
