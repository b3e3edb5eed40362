"""Exporter configuration loaded from environment variables.

Variable names mirror the exporter's historical flag environment
(``LISTEN_ADDRESS``, ``QUERY_TIMEOUT``, ``DATA_SOURCE_NAME`` ...) so existing
deployment scripts keep working.  Command-line flags are applied on top as
keyword overrides through :func:`load_settings`.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


class LogFormat(str, Enum):
    LOGFMT = "logfmt"
    JSON = "json"


class ExporterMode(str, Enum):
    """How targets are chosen for a scrape."""

    SINGLE_TARGET = "single-target"
    PROBE = "probe"


class Settings(BaseSettings):
    """Process-wide exporter settings.

    Constructed once at startup and passed by reference to the collector,
    the probe resolver and the HTTP layer.  Never mutated afterwards.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # HTTP
    listen_address: str = ":9161"
    telemetry_path: str = "/metrics"

    # Metric definition files
    default_metrics: Path = Path("default-metrics.toml")
    custom_metrics: Path | None = None

    # Query execution (seconds)
    query_timeout: float = Field(default=5.0, gt=0)

    # Connection pool
    max_idle_conns: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("max_idle_conns", "DATABASE_MAXIDLECONNS"),
    )
    max_open_conns: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("max_open_conns", "DATABASE_MAXOPENCONNS"),
    )

    # Single-target DSN.  When unset the exporter runs in probe mode.
    data_source_name: SecretStr | None = None

    # Credential store for probe mode.
    config_cnf: Path = Field(default_factory=lambda: Path.home() / "config.default.cnf")

    # SQLAlchemy driver name used when building probe DSNs.
    driver: str = Field(
        default="dm+dmPython",
        validation_alias=AliasChoices("driver", "DMDB_DRIVER"),
    )
    # Fixed query-string options appended to probe DSNs.
    connect_options: dict[str, str] = Field(default_factory=lambda: {"autoCommit": "true"})

    # Liveness query issued before each scrape cycle.
    ping_query: str = "SELECT 1"

    # Upper bound on concurrently running definitions per cycle.
    max_concurrency: int = Field(default=32, ge=1)

    # Logging
    log_level: str = "info"
    log_format: LogFormat = LogFormat.LOGFMT

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, v: object) -> str:
        level = str(v).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level '{v}', expected one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("custom_metrics", "data_source_name", mode="before")
    @classmethod
    def _empty_as_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("telemetry_path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"telemetry path must start with '/': {v!r}")
        return v

    @property
    def mode(self) -> ExporterMode:
        if self.data_source_name is not None:
            return ExporterMode.SINGLE_TARGET
        return ExporterMode.PROBE

    @property
    def log_level_number(self) -> int:
        return _LOG_LEVELS[self.log_level]

    def listen_host_port(self) -> tuple[str, int]:
        """Split ``listen_address`` into ``(host, port)``.

        ``":9161"`` binds every interface, matching the Go-style address
        syntax the flag has always accepted.
        """
        host, sep, port = self.listen_address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"invalid listen address {self.listen_address!r}, expected [host]:port")
        return (host or "0.0.0.0", int(port))


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides from the CLI.

    ``None`` overrides are dropped so that unset flags fall through to the
    environment and defaults.
    """
    settings = Settings(**{k: v for k, v in overrides.items() if v is not None})  # type: ignore[arg-type]
    logger.debug("Loaded settings (mode=%s, timeout=%.1fs)", settings.mode.value, settings.query_timeout)
    return settings
