"""Shared database handle used by a collector for its scrape cycles.

:class:`Database` wraps a synchronous SQLAlchemy :class:`~sqlalchemy.engine.Engine`
with the two operations the collector needs before fanning out: a liveness
ping and an explicit closed state that can be detected and recovered from
by reopening the handle with the same DSN.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import ArgumentError, ResourceClosedError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from dmdb_core.errors import ConnectError, DatabaseClosedError, PingError

logger = logging.getLogger(__name__)


def _create_engine(
    url: URL,
    max_open_conns: int,
    max_idle_conns: int,
    pool_timeout: float,
) -> Engine:
    """Create a pooled engine sized after the exporter's connection limits.

    * in-memory SQLite -> SQLAlchemy's default single-connection pool
    * ``max_idle_conns == 0`` -> no idle connections kept (``NullPool``)
    * otherwise -> ``max_idle_conns`` persistent connections plus overflow up
      to ``max_open_conns``
    """
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(url)

    if max_idle_conns == 0:
        return create_engine(url, poolclass=NullPool)

    pool_size = min(max_idle_conns, max_open_conns)
    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max(max_open_conns - pool_size, 0),
        pool_timeout=pool_timeout,
    )


class Database:
    """Reopenable handle around a SQLAlchemy engine.

    Parameters
    ----------
    dsn:
        SQLAlchemy URL (string or :class:`URL`) of the target database.
    max_open_conns:
        Upper bound on simultaneously open connections.
    max_idle_conns:
        Connections kept open between scrapes.  ``0`` closes every
        connection when it is returned.
    pool_timeout:
        Seconds to wait for a free pooled connection.
    ping_query:
        Liveness statement issued by :meth:`ping`.
    """

    def __init__(
        self,
        dsn: str | URL,
        *,
        max_open_conns: int = 10,
        max_idle_conns: int = 0,
        pool_timeout: float = 30.0,
        ping_query: str = "SELECT 1",
    ) -> None:
        self._dsn = dsn
        self._max_open_conns = max_open_conns
        self._max_idle_conns = max_idle_conns
        self._pool_timeout = pool_timeout
        self._ping_query = ping_query

        try:
            url = make_url(dsn)
            self._masked = url.render_as_string(hide_password=True)
            logger.debug("Launching connection: %s", self._masked)
            self._engine: Engine | None = _create_engine(url, max_open_conns, max_idle_conns, pool_timeout)
        except (ArgumentError, ImportError) as exc:
            raise ConnectError(f"Error while connecting to {_mask(dsn)}: {exc}") from exc

        logger.debug(
            "Engine ready for %s (max open %d, max idle %d)",
            self._masked,
            max_open_conns,
            max_idle_conns,
        )

    # -- Handle state ---------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._engine is None

    @property
    def engine(self) -> Engine:
        """Return the live engine, raising :class:`DatabaseClosedError` once closed."""
        if self._engine is None:
            raise DatabaseClosedError("database is closed")
        return self._engine

    @property
    def masked_dsn(self) -> str:
        return self._masked

    def close(self) -> None:
        """Dispose the engine's pool.  Further use raises :class:`DatabaseClosedError`."""
        if self._engine is not None:
            try:
                self._engine.dispose()
            finally:
                self._engine = None

    def reopen(self) -> Database:
        """Return a fresh handle for the same DSN and pool settings."""
        return Database(
            self._dsn,
            max_open_conns=self._max_open_conns,
            max_idle_conns=self._max_idle_conns,
            pool_timeout=self._pool_timeout,
            ping_query=self._ping_query,
        )

    # -- Liveness -------------------------------------------------------------

    def ping(self) -> None:
        """Run the liveness query on a pooled connection.

        Raises
        ------
        DatabaseClosedError
            If the handle has been closed.
        PingError
            If the database cannot be reached or rejects the query.
        """
        engine = self.engine
        try:
            with engine.connect() as conn:
                conn.execute(text(self._ping_query))
        except ResourceClosedError as exc:
            raise DatabaseClosedError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise PingError(str(exc)) from exc

    # -- Context manager support ----------------------------------------------

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Database({self._masked!r}, {state})"


def _mask(dsn: str | URL) -> str:
    try:
        return make_url(dsn).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparsable dsn>"
