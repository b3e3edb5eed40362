"""Prometheus collector that scrapes every metric definition per cycle.

One :class:`Exporter` owns one database handle and the cumulative health
counters for that target.  Each call to :meth:`Exporter.collect` is a scrape
cycle:

1. ping the handle, reopening it once if it reports itself closed;
2. run every definition concurrently on a thread pool and wait for all of
   them (fork-join);
3. emit the samples of every successful definition plus the exporter's
   health metrics.

A failing definition only increments its own ``scrape_errors_total``
series; siblings and the cycle carry on.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from sqlalchemy.engine import URL

from dmdb_core import EXPORTER_SUBSYSTEM, NAMESPACE
from dmdb_core.config import Settings
from dmdb_core.errors import DatabaseClosedError, DatabaseError, ExporterError
from dmdb_core.executor.database import Database
from dmdb_core.metrics.translator import build_fq_name, scrape_metric
from dmdb_core.models.definition import MetricDefinition
from dmdb_core.models.sample import Sample

logger = logging.getLogger(__name__)


@dataclass
class CollectorState:
    """Cumulative health of one exporter instance."""

    up: bool = False
    scrapes_total: int = 0
    scrape_errors: dict[str, int] = field(default_factory=dict)
    last_scrape_duration: float = 0.0
    last_scrape_error: bool = False


@dataclass(frozen=True)
class TaskOutcome:
    """Result of scraping one definition within a cycle."""

    definition: MetricDefinition
    samples: tuple[Sample, ...] = ()
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class Exporter:
    """Scrape a DM database for every configured metric definition.

    Implements the ``prometheus_client`` custom collector protocol, so it can
    be registered on any :class:`~prometheus_client.CollectorRegistry`.

    Parameters
    ----------
    database:
        Handle shared read-only by all definitions of a cycle.
    definitions:
        Validated metric definitions, scraped in parallel.
    query_timeout:
        Default per-query deadline in seconds.
    max_concurrency:
        Upper bound on definitions running at the same time.
    """

    def __init__(
        self,
        database: Database,
        definitions: Sequence[MetricDefinition],
        *,
        query_timeout: float = 5.0,
        max_concurrency: int = 32,
    ) -> None:
        self._database = database
        self._definitions = tuple(definitions)
        self._query_timeout = query_timeout
        self._max_concurrency = max_concurrency
        self._state = CollectorState()
        # Serialises cycles so health counters never interleave.
        self._cycle_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        dsn: str | URL,
        definitions: Sequence[MetricDefinition],
        settings: Settings,
    ) -> Exporter:
        """Open a database handle for *dsn* sized after *settings*."""
        database = Database(
            dsn,
            max_open_conns=settings.max_open_conns,
            max_idle_conns=settings.max_idle_conns,
            pool_timeout=settings.query_timeout,
            ping_query=settings.ping_query,
        )
        return cls(
            database,
            definitions,
            query_timeout=settings.query_timeout,
            max_concurrency=settings.max_concurrency,
        )

    # -- Accessors ------------------------------------------------------------

    @property
    def database(self) -> Database:
        return self._database

    @property
    def definitions(self) -> tuple[MetricDefinition, ...]:
        return self._definitions

    @property
    def state(self) -> CollectorState:
        """Return a snapshot of the health counters."""
        with self._cycle_lock:
            return copy.deepcopy(self._state)

    def close(self) -> None:
        self._database.close()

    # -- prometheus_client collector protocol ---------------------------------

    def describe(self) -> list[Metric]:
        # Registration must not trigger a database round-trip.
        return []

    def collect(self) -> Iterator[Metric]:
        with self._cycle_lock:
            outcomes = self._scrape_cycle()
            families = self._sample_families(outcomes)
            families.extend(self._health_families())
        yield from families

    # -- Scrape cycle ---------------------------------------------------------

    def _scrape_cycle(self) -> list[TaskOutcome]:
        self._state.scrapes_total += 1

        try:
            self._ping()
        except DatabaseError as exc:
            logger.error("Error pinging dm db: %s", exc)
            self._state.up = False
            self._state.last_scrape_duration = 0.0
            self._state.last_scrape_error = True
            return []

        logger.debug("Successfully pinged DM database")
        self._state.up = True

        started = time.monotonic()
        outcomes = self._run_definitions()
        self._state.last_scrape_duration = time.monotonic() - started

        failed = False
        for outcome in outcomes:
            if not outcome.failed:
                logger.debug("Successfully scraped metric: %s", outcome.definition.context)
                continue
            failed = True
            self._record_error(outcome.definition.context)
            logger.error(
                "Error scraping for %s_%s: %s",
                outcome.definition.context,
                sorted(outcome.definition.value_columns),
                outcome.error,
            )
        self._state.last_scrape_error = failed
        return outcomes

    def _ping(self) -> None:
        try:
            self._database.ping()
        except DatabaseClosedError:
            # Installed before fan-out, so no task of this cycle sees the old handle.
            logger.info("Reconnecting to DB")
            self._database = self._database.reopen()
            self._database.ping()

    def _run_definitions(self) -> list[TaskOutcome]:
        if not self._definitions:
            return []
        workers = min(len(self._definitions), self._max_concurrency)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dmdb-scrape") as pool:
            futures = [pool.submit(self._run_definition, definition) for definition in self._definitions]
            return [future.result() for future in futures]

    def _run_definition(self, definition: MetricDefinition) -> TaskOutcome:
        logger.debug(
            "About to scrape metric: context=%s metricsdesc=%s labels=%s fieldtoappend=%s request=%s",
            definition.context,
            definition.value_columns,
            list(definition.labels),
            definition.name_field,
            definition.query,
        )
        try:
            samples = scrape_metric(self._database, definition, self._query_timeout)
        except Exception as exc:
            if not isinstance(exc, ExporterError):
                logger.exception("Unexpected failure scraping context %r", definition.context)
            return TaskOutcome(definition=definition, error=exc)
        return TaskOutcome(definition=definition, samples=tuple(samples))

    def _record_error(self, context: str) -> None:
        self._state.scrape_errors[context] = self._state.scrape_errors.get(context, 0) + 1

    # -- Exposition -----------------------------------------------------------

    def _sample_families(self, outcomes: list[TaskOutcome]) -> list[Metric]:
        """Group samples into one metric family per name.

        A family ``prometheus_client`` rejects (typically a name derived from
        row data that is not a legal metric name) is dropped and counted as
        an error of the definition that produced it.  So is a repeated
        series: a second sample with a name and label set already emitted
        in this cycle.
        """
        families: dict[str, Metric] = {}
        seen: set[tuple[str, tuple[tuple[str, str], ...]]] = set()
        rejected: set[str] = set()
        for outcome in outcomes:
            context = outcome.definition.context
            for sample in outcome.samples:
                if sample.name in rejected:
                    continue
                family = families.get(sample.name)
                if family is None:
                    try:
                        family = _new_family(sample)
                    except ValueError as exc:
                        rejected.add(sample.name)
                        self._drop(context, "Dropping metric %r from context %r: %s", sample.name, context, exc)
                        continue
                    families[sample.name] = family
                elif family.type != sample.kind.value:
                    logger.warning(
                        "Metric %r emitted as both %s and %s; keeping %s",
                        sample.name,
                        family.type,
                        sample.kind.value,
                        family.type,
                    )

                series = (sample.name, tuple(sorted(sample.labels)))
                if series in seen:
                    self._drop(
                        context,
                        "Dropping duplicate series %s%s from context %r",
                        sample.name,
                        sample.label_dict(),
                        context,
                    )
                    continue
                seen.add(series)
                family.add_sample(sample.name, sample.label_dict(), sample.value)
        return list(families.values())

    def _drop(self, context: str, msg: str, *args: object) -> None:
        self._record_error(context)
        self._state.last_scrape_error = True
        logger.error(msg, *args)

    def _health_families(self) -> list[Metric]:
        state = self._state
        scrape_errors = CounterMetricFamily(
            build_fq_name(NAMESPACE, EXPORTER_SUBSYSTEM, "scrape_errors_total"),
            "Total number of times an error occurred scraping a DM database.",
            labels=["collector"],
        )
        for context, count in sorted(state.scrape_errors.items()):
            scrape_errors.add_metric([context], count)

        return [
            GaugeMetricFamily(
                build_fq_name(NAMESPACE, EXPORTER_SUBSYSTEM, "last_scrape_duration_seconds"),
                "Duration of the last scrape of metrics from DM DB.",
                value=state.last_scrape_duration,
            ),
            CounterMetricFamily(
                build_fq_name(NAMESPACE, EXPORTER_SUBSYSTEM, "scrapes_total"),
                "Total number of times DM DB was scraped for metrics.",
                value=state.scrapes_total,
            ),
            GaugeMetricFamily(
                build_fq_name(NAMESPACE, EXPORTER_SUBSYSTEM, "last_scrape_error"),
                "Whether the last scrape of metrics from DM DB resulted in an error (1 for error, 0 for success).",
                value=1.0 if state.last_scrape_error else 0.0,
            ),
            scrape_errors,
            GaugeMetricFamily(
                build_fq_name(NAMESPACE, "up"),
                "Whether the DM database server is up.",
                value=1.0 if state.up else 0.0,
            ),
        ]


def _new_family(sample: Sample) -> Metric:
    # CounterMetricFamily would rename counters to <name>_total; samples keep
    # the name their definition produced.
    return Metric(sample.name, sample.help, sample.kind.value)
