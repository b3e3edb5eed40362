"""Generic query execution with a hard per-query deadline.

:func:`scrape_generic_values` runs one SQL statement, normalises every
result row and hands it to a caller-supplied handler.  The deadline covers
both statement execution and row fetching.  When it expires the running
statement is cancelled through the DBAPI connection and the caller receives
:class:`QueryTimeoutError`, which operators can tell apart from a broken
query (:class:`QueryError`).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import Any

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError

from dmdb_core.errors import QueryError, QueryTimeoutError
from dmdb_core.executor.database import Database
from dmdb_core.executor.normalizer import normalize_row
from dmdb_core.models.row import NormalizedRow

logger = logging.getLogger(__name__)

RowHandler = Callable[[NormalizedRow], None]


class _Deadline:
    """Cancel a DBAPI connection's running statement after *timeout* seconds.

    Drivers expose cancellation under different names: ``cancel()`` (DM,
    Oracle, psycopg) or ``interrupt()`` (sqlite3).  If neither exists the
    statement runs to completion and the expiry is only reported afterwards.
    """

    def __init__(self, timeout: float, dbapi_connection: Any) -> None:
        self._timeout = timeout
        self._cancel = getattr(dbapi_connection, "cancel", None) or getattr(dbapi_connection, "interrupt", None)
        self._lock = threading.Lock()
        self._disarmed = False
        self._expired = threading.Event()
        self._timer = threading.Timer(timeout, self._fire)
        self._timer.daemon = True

    @property
    def expired(self) -> bool:
        return self._expired.is_set()

    def _fire(self) -> None:
        with self._lock:
            if self._disarmed:
                return
            self._expired.set()
            if self._cancel is None:
                return
            try:
                self._cancel()
            except Exception:
                logger.debug("Driver refused to cancel statement after %.1fs", self._timeout, exc_info=True)

    def __enter__(self) -> _Deadline:
        self._timer.start()
        return self

    def __exit__(self, *exc: object) -> None:
        # The connection goes back to the pool after this; a late cancel
        # must never hit whatever statement runs on it next.
        with self._lock:
            self._disarmed = True
        self._timer.cancel()


def _iter_rows(result: CursorResult[Any], deadline: _Deadline, timeout: float) -> Iterator[NormalizedRow]:
    columns = list(result.keys())
    rows = iter(result)
    while True:
        try:
            raw = next(rows)
        except StopIteration:
            return
        except SQLAlchemyError as exc:
            raise _failure(exc, deadline, timeout) from exc
        yield normalize_row(columns, raw)


def _failure(exc: SQLAlchemyError, deadline: _Deadline, timeout: float) -> Exception:
    if deadline.expired:
        return QueryTimeoutError(f"DM query timed out after {timeout:g}s")
    return QueryError(str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc))


def scrape_generic_values(
    database: Database,
    query: str,
    timeout: float,
    row_handler: RowHandler,
) -> None:
    """Execute *query* and feed every normalised row to *row_handler*.

    Rows are delivered in result order.  An exception raised by
    *row_handler* stops the scrape immediately and propagates unchanged.
    The result cursor and the pooled connection are released on every exit
    path.

    Raises
    ------
    QueryTimeoutError
        If execution or fetching did not finish within *timeout* seconds.
    QueryError
        If the driver failed the statement for any other reason.
    DatabaseClosedError
        If *database* has been closed.
    """
    engine = database.engine
    try:
        conn = engine.connect()
    except SQLAlchemyError as exc:
        raise QueryError(f"unable to acquire connection: {exc}") from exc

    with conn:
        deadline = _Deadline(timeout, conn.connection.dbapi_connection)
        with deadline:
            try:
                # no_parameters: the statement goes to the driver verbatim, so
                # '%' and ':' in SQL text need no escaping.
                result = conn.exec_driver_sql(query, execution_options={"no_parameters": True})
            except SQLAlchemyError as exc:
                raise _failure(exc, deadline, timeout) from exc

            try:
                for row in _iter_rows(result, deadline, timeout):
                    row_handler(row)
            finally:
                result.close()

        if deadline.expired:
            raise QueryTimeoutError(f"DM query timed out after {timeout:g}s")
