"""Shared fixtures for dmdb_core tests.

A small SQLite database file stands in for DM: it supports concurrent
connections from worker threads, statement interruption for timeout tests,
and enough SQL to exercise every translation path.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import create_engine

from dmdb_core.executor.database import Database
from dmdb_core.models.definition import MetricDefinition

_SEED_SQL: tuple[str, ...] = (
    "CREATE TABLE sessions (state TEXT, user_name TEXT, cnt INTEGER)",
    "INSERT INTO sessions VALUES ('ACTIVE', 'SYSDBA', 3), ('IDLE', 'SYSDBA', 7), ('ACTIVE', 'APP', 2)",
    "CREATE TABLE sysstat (name TEXT, stat_val NUMERIC)",
    "INSERT INTO sysstat VALUES ('select statements', 1200), ('Commit (Total)', 45.5), ('io/wait*', 9)",
    "CREATE TABLE tablespace (tablespace TEXT, bytes INTEGER, free TEXT)",
    "INSERT INTO tablespace VALUES ('SYSTEM', 1048576, '2048'), ('MAIN', 4194304, 'n/a')",
    "CREATE TABLE empty_table (value INTEGER)",
)


@pytest.fixture()
def sqlite_url(tmp_path: Path) -> str:
    """Return the URL of a seeded SQLite database file."""
    url = f"sqlite:///{tmp_path / 'dm.db'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in _SEED_SQL:
            conn.exec_driver_sql(statement)
    engine.dispose()
    return url


@pytest.fixture()
def database(sqlite_url: str) -> Iterator[Database]:
    """Open a pooled handle on the seeded database."""
    db = Database(sqlite_url, max_open_conns=8, max_idle_conns=4, pool_timeout=5.0)
    yield db
    db.close()


@pytest.fixture()
def sessions_definition() -> MetricDefinition:
    return MetricDefinition(
        context="sessions",
        labels=("state", "user_name"),
        value_columns={"cnt": "Number of sessions."},
        query="SELECT state, user_name, cnt FROM sessions ORDER BY cnt",
    )


@pytest.fixture()
def sysstat_definition() -> MetricDefinition:
    return MetricDefinition(
        context="sysstat",
        value_columns={"stat_val": "System statistic."},
        value_kinds={"stat_val": "counter"},
        name_field="name",
        query="SELECT name, stat_val FROM sysstat",
    )
