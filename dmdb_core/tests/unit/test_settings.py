"""Unit tests for dmdb_core.config."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from dmdb_core.config import ExporterMode, LogFormat, Settings, load_settings

_ENV_VARS = (
    "LISTEN_ADDRESS",
    "TELEMETRY_PATH",
    "DEFAULT_METRICS",
    "CUSTOM_METRICS",
    "QUERY_TIMEOUT",
    "DATABASE_MAXIDLECONNS",
    "DATABASE_MAXOPENCONNS",
    "MAX_IDLE_CONNS",
    "MAX_OPEN_CONNS",
    "DATA_SOURCE_NAME",
    "CONFIG_CNF",
    "DMDB_DRIVER",
    "DRIVER",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Settings - default values
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    def test_default_listen_address(self):
        assert Settings().listen_address == ":9161"

    def test_default_telemetry_path(self):
        assert Settings().telemetry_path == "/metrics"

    def test_default_metric_files(self):
        settings = Settings()
        assert settings.default_metrics == Path("default-metrics.toml")
        assert settings.custom_metrics is None

    def test_default_timeout(self):
        assert Settings().query_timeout == 5.0

    def test_default_pool_limits(self):
        settings = Settings()
        assert settings.max_idle_conns == 0
        assert settings.max_open_conns == 10

    def test_default_credential_file(self):
        assert Settings().config_cnf == Path.home() / "config.default.cnf"

    def test_default_driver_and_options(self):
        settings = Settings()
        assert settings.driver == "dm+dmPython"
        assert settings.connect_options == {"autoCommit": "true"}

    def test_default_logging(self):
        settings = Settings()
        assert settings.log_level == "info"
        assert settings.log_format == LogFormat.LOGFMT

    def test_default_mode_is_probe(self):
        assert Settings().mode == ExporterMode.PROBE


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


class TestSettingsEnvOverrides:
    def test_data_source_name_selects_single_target(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_SOURCE_NAME", "dm+dmPython://SYSDBA:pw@dm:5236")
        settings = Settings()
        assert settings.mode == ExporterMode.SINGLE_TARGET
        assert settings.data_source_name is not None
        assert settings.data_source_name.get_secret_value() == "dm+dmPython://SYSDBA:pw@dm:5236"

    def test_empty_data_source_name_is_probe(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATA_SOURCE_NAME", "")
        assert Settings().mode == ExporterMode.PROBE

    def test_query_timeout(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QUERY_TIMEOUT", "2.5")
        assert Settings().query_timeout == 2.5

    def test_historical_pool_variable_names(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_MAXIDLECONNS", "4")
        monkeypatch.setenv("DATABASE_MAXOPENCONNS", "20")
        settings = Settings()
        assert settings.max_idle_conns == 4
        assert settings.max_open_conns == 20

    def test_custom_metrics_path(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CUSTOM_METRICS", "/etc/dmdb/custom.toml")
        assert Settings().custom_metrics == Path("/etc/dmdb/custom.toml")

    def test_log_level_is_case_insensitive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        settings = Settings()
        assert settings.log_level == "debug"
        assert settings.log_level_number == logging.DEBUG

    def test_log_format_json(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        assert Settings().log_format == LogFormat.JSON

    def test_dotenv_file_is_read(self, tmp_path: Path):
        (tmp_path / ".env").write_text("LISTEN_ADDRESS=127.0.0.1:9999\n")
        assert Settings().listen_address == "127.0.0.1:9999"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestSettingsValidation:
    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            Settings(query_timeout=0)

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError, match="unknown log level"):
            Settings(log_level="verbose")

    def test_rejects_relative_telemetry_path(self):
        with pytest.raises(ValidationError, match="must start with"):
            Settings(telemetry_path="metrics")

    def test_settings_are_frozen(self):
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.query_timeout = 1.0  # type: ignore[misc]


class TestListenHostPort:
    def test_empty_host_binds_all_interfaces(self):
        assert Settings().listen_host_port() == ("0.0.0.0", 9161)

    def test_explicit_host(self):
        assert Settings(listen_address="127.0.0.1:8080").listen_host_port() == ("127.0.0.1", 8080)

    def test_missing_port(self):
        with pytest.raises(ValueError, match="invalid listen address"):
            Settings(listen_address="localhost").listen_host_port()


class TestLoadSettings:
    def test_none_overrides_fall_through(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QUERY_TIMEOUT", "7")
        settings = load_settings(query_timeout=None, listen_address=":9200")
        assert settings.query_timeout == 7.0
        assert settings.listen_address == ":9200"

    def test_overrides_beat_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DATABASE_MAXOPENCONNS", "3")
        assert load_settings(max_open_conns=12).max_open_conns == 12
