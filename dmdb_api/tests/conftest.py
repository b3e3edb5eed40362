"""Shared fixtures for dmdb_api tests.

Each test gets its own :class:`CollectorRegistry` so exporters registered
by one test never leak into another test's telemetry output.  A seeded
SQLite file plays the role of the DM database.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry
from pydantic import SecretStr
from sqlalchemy import create_engine

from dmdb_api.dependencies import ExporterRuntime
from dmdb_api.main import create_app
from dmdb_core.config import Settings
from dmdb_core.loader.credentials import CredentialStore
from dmdb_core.models.definition import MetricDefinition

_SEED_SQL: tuple[str, ...] = (
    "CREATE TABLE sessions (state TEXT, cnt INTEGER)",
    "INSERT INTO sessions VALUES ('ACTIVE', 3), ('IDLE', 7)",
)

_CNF = """
[client]
host = dm-primary
port = 5236
user = SYSDBA
password = dameng123

[client.nouser]
password = only
"""


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path / 'dm.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in _SEED_SQL:
            conn.exec_driver_sql(statement)
    engine.dispose()
    return url


@pytest.fixture()
def definitions() -> list[MetricDefinition]:
    return [
        MetricDefinition(
            context="sessions",
            labels=("state",),
            value_columns={"cnt": "Number of sessions by state."},
            query="SELECT state, cnt FROM sessions",
        )
    ]


@pytest.fixture()
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture()
def single_target_runtime(
    sqlite_url: str,
    definitions: list[MetricDefinition],
    registry: CollectorRegistry,
) -> Iterator[ExporterRuntime]:
    settings = Settings(data_source_name=SecretStr(sqlite_url), max_idle_conns=2)
    runtime = ExporterRuntime(settings, definitions, registry=registry)
    yield runtime
    runtime.close()


@pytest.fixture()
def probe_runtime(
    definitions: list[MetricDefinition],
    registry: CollectorRegistry,
) -> ExporterRuntime:
    return ExporterRuntime(
        Settings(data_source_name=None),
        definitions,
        registry=registry,
        credentials=CredentialStore.from_string(_CNF),
    )


@pytest.fixture()
def single_target_app(single_target_runtime: ExporterRuntime) -> FastAPI:
    return create_app(runtime=single_target_runtime)


@pytest.fixture()
def probe_app(probe_runtime: ExporterRuntime) -> FastAPI:
    return create_app(runtime=probe_runtime)


@pytest_asyncio.fixture()
async def single_target_client(single_target_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=single_target_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture()
async def probe_client(probe_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=probe_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
