"""Turn normalised result rows into Prometheus samples.

Each value column of a :class:`MetricDefinition` yields at most one
:class:`Sample` per row.  Two naming strategies exist:

* **label-based** (default) -- ``dmdb_<context>_<column>`` with the
  definition's labels filled from the row;
* **field-derived** (``fieldtoappend`` set) -- ``dmdb_<context>_<row value>``
  with no labels at all, the identifying value having moved into the name.

Unparsable values skip only their own column.  Whether an empty scrape is an
error is decided once per scrape by :func:`scrape_metric`.
"""

from __future__ import annotations

import logging

from dmdb_core import NAMESPACE
from dmdb_core.errors import NoMetricsFoundError
from dmdb_core.executor.database import Database
from dmdb_core.executor.scraper import scrape_generic_values
from dmdb_core.metrics.kinds import resolve_kind
from dmdb_core.models.definition import MetricDefinition
from dmdb_core.models.row import NormalizedRow
from dmdb_core.models.sample import Sample

logger = logging.getLogger(__name__)

# Characters that databases like to put in identifiers but Prometheus
# rejects in metric names.  Spaces become underscores, the rest vanish.
_NAME_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    (" ", "_"),
    ("(", ""),
    (")", ""),
    ("/", ""),
    ("*", ""),
)


def sanitize_name(value: str) -> str:
    """Clean a database-sourced identifier for use inside a metric name.

    >>> sanitize_name("My (Weird) Name/*")
    'my_weird_name'
    """
    for old, new in _NAME_REPLACEMENTS:
        value = value.replace(old, new)
    return value.lower()


def build_fq_name(*parts: str) -> str:
    """Join the non-empty *parts* with underscores."""
    return "_".join(part for part in parts if part)


def translate(definition: MetricDefinition, row: NormalizedRow) -> list[Sample]:
    """Produce the samples for a single result row."""
    labels = tuple((label, row.get(label)) for label in definition.labels)

    samples: list[Sample] = []
    for column, help_text in definition.value_columns.items():
        raw = row.get(column)
        try:
            value = float(raw.strip())
        except ValueError:
            logger.error(
                "Unable to convert current value to float (metric=%s,metricHelp=%s,value=<%s>)",
                column,
                help_text,
                raw,
            )
            continue

        if definition.name_field is None:
            name = build_fq_name(NAMESPACE, definition.context, column)
            sample_labels = labels
        else:
            name = build_fq_name(NAMESPACE, definition.context, sanitize_name(row.get(definition.name_field)))
            sample_labels = ()

        samples.append(
            Sample(
                name=name,
                kind=resolve_kind(column, definition.value_kinds),
                value=value,
                help=help_text,
                labels=sample_labels,
            )
        )

    return samples


def scrape_metric(database: Database, definition: MetricDefinition, timeout: float) -> list[Sample]:
    """Run *definition*'s query and translate every row, in result order.

    Raises
    ------
    NoMetricsFoundError
        If the definition does not ignore empty results and no sample was
        produced across the whole scrape.
    QueryTimeoutError, QueryError
        Propagated from :func:`scrape_generic_values`.
    """
    samples: list[Sample] = []

    def _handle(row: NormalizedRow) -> None:
        samples.extend(translate(definition, row))

    scrape_generic_values(database, definition.query, definition.effective_timeout(timeout), _handle)

    logger.debug("Scraped %d sample(s) for context %r", len(samples), definition.context)
    if not samples and not definition.ignore_zero_rows:
        raise NoMetricsFoundError("No metrics found while parsing")
    return samples
