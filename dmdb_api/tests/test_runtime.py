"""Tests for dmdb_api.dependencies.ExporterRuntime."""

from __future__ import annotations

from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry
from pydantic import SecretStr

from dmdb_api.dependencies import ExporterRuntime
from dmdb_core.config import ExporterMode, Settings
from dmdb_core.errors import ConnectError, CredentialFileError, DefinitionFileError
from dmdb_core.models.definition import MetricDefinition

_DEFINITIONS_TOML = """
[[metric]]
context = "sessions"
labels = ["state"]
metricsdesc = { cnt = "Number of sessions by state." }
request = "SELECT state, cnt FROM sessions"
"""


@pytest.fixture()
def definitions_file(tmp_path: Path) -> Path:
    path = tmp_path / "default-metrics.toml"
    path.write_text(_DEFINITIONS_TOML)
    return path


class TestFromSettings:
    def test_single_target_registers_exporter(self, definitions_file: Path, sqlite_url: str):
        registry = CollectorRegistry()
        settings = Settings(default_metrics=definitions_file, data_source_name=SecretStr(sqlite_url))

        runtime = ExporterRuntime.from_settings(settings, registry=registry)
        try:
            assert runtime.mode is ExporterMode.SINGLE_TARGET
            assert [d.context for d in runtime.definitions] == ["sessions"]
            assert runtime.credentials is None
            assert registry.get_sample_value("dmdb_up") == 1.0
        finally:
            runtime.close()

    def test_probe_mode_loads_credentials(self, definitions_file: Path, tmp_path: Path):
        cnf = tmp_path / "my.cnf"
        cnf.write_text("[client]\nuser = SYSDBA\npassword = pw\n")
        settings = Settings(default_metrics=definitions_file, data_source_name=None, config_cnf=cnf)

        runtime = ExporterRuntime.from_settings(settings, registry=CollectorRegistry())

        assert runtime.mode is ExporterMode.PROBE
        assert runtime.exporter is None
        assert runtime.credentials is not None
        assert runtime.credentials.get("client", "user") == "SYSDBA"

    def test_missing_credential_file_is_fatal(self, definitions_file: Path, tmp_path: Path):
        settings = Settings(default_metrics=definitions_file, data_source_name=None, config_cnf=tmp_path / "absent.cnf")
        with pytest.raises(CredentialFileError):
            ExporterRuntime.from_settings(settings, registry=CollectorRegistry())

    def test_missing_definitions_file_is_fatal(self, tmp_path: Path, sqlite_url: str):
        settings = Settings(default_metrics=tmp_path / "absent.toml", data_source_name=SecretStr(sqlite_url))
        with pytest.raises(DefinitionFileError):
            ExporterRuntime.from_settings(settings, registry=CollectorRegistry())

    def test_bad_dsn_is_fatal(self, definitions_file: Path):
        settings = Settings(default_metrics=definitions_file, data_source_name=SecretStr("not a url"))
        with pytest.raises(ConnectError):
            ExporterRuntime.from_settings(settings, registry=CollectorRegistry())


class TestRuntime:
    def test_probe_mode_requires_credentials(self, definitions: list[MetricDefinition]):
        with pytest.raises(ValueError, match="requires a credential store"):
            ExporterRuntime(Settings(data_source_name=None), definitions, registry=CollectorRegistry())

    def test_close_unregisters_exporter(self, single_target_runtime: ExporterRuntime, registry: CollectorRegistry):
        exporter = single_target_runtime.exporter
        assert exporter is not None

        single_target_runtime.close()

        assert single_target_runtime.exporter is None
        assert exporter.database.closed
        assert registry.get_sample_value("dmdb_up") is None

    def test_close_is_idempotent(self, single_target_runtime: ExporterRuntime):
        single_target_runtime.close()
        single_target_runtime.close()
        assert single_target_runtime.exporter is None
