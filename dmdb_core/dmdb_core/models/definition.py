"""Declarative metric definition schema.

One :class:`MetricDefinition` maps a single SQL query to one or more
Prometheus samples per result row.  Definitions are read from TOML files
whose historical key names (``metricsdesc``, ``fieldtoappend``, ``request``
...) are accepted as aliases of the Pythonic field names.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class MetricKind(str, Enum):
    """Prometheus value semantics of an emitted sample."""

    GAUGE = "gauge"
    COUNTER = "counter"


# File keys (lower-cased) -> model field names.
_FILE_KEY_ALIASES: dict[str, str] = {
    "metricsdesc": "value_columns",
    "metricstype": "value_kinds",
    "fieldtoappend": "name_field",
    "ignorezeroresult": "ignore_zero_rows",
    "request": "query",
}


class MetricDefinition(BaseModel):
    """A configured query-to-metrics mapping."""

    model_config = ConfigDict(frozen=True)

    context: str = Field(
        default="",
        description="Namespace segment used in every sample name of this definition.",
    )
    labels: tuple[str, ...] = Field(
        default=(),
        description="Columns whose values become label values, in label order.",
    )
    value_columns: dict[str, str] = Field(
        default_factory=dict,
        description="Value column -> help text.  Each entry yields one sample per row.",
    )
    value_kinds: dict[str, MetricKind] = Field(
        default_factory=dict,
        description="Value column (lower-cased) -> metric kind.  Absent columns are gauges.",
    )
    name_field: str | None = Field(
        default=None,
        description="Column whose value replaces the value column in the metric name.",
    )
    ignore_zero_rows: bool = Field(
        default=False,
        description="When false, a scrape producing no samples is reported as an error.",
    )
    query: str = Field(
        default="",
        description="SQL text to execute.",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-definition query timeout in seconds; falls back to the global timeout.",
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_file_keys(cls, data: Any) -> Any:
        """Map TOML keys onto field names, case-insensitively."""
        if not isinstance(data, dict):
            return data
        out: dict[str, Any] = {}
        for key, value in data.items():
            lowered = str(key).lower()
            out[_FILE_KEY_ALIASES.get(lowered, lowered)] = value
        return out

    @field_validator("value_kinds", mode="before")
    @classmethod
    def _parse_kinds(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        kinds: dict[str, MetricKind] = {}
        for column, token in v.items():
            token_str = (token.value if isinstance(token, MetricKind) else str(token)).strip().lower()
            if not token_str:
                continue
            try:
                kinds[str(column).lower()] = MetricKind(token_str)
            except ValueError:
                raise ValueError(
                    f"unknown metric type '{token}' for column '{column}', expected 'gauge' or 'counter'"
                ) from None
        return kinds

    @field_validator("name_field", mode="before")
    @classmethod
    def _blank_name_field(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _require_query_and_values(self) -> MetricDefinition:
        if not self.query.strip():
            raise ValueError(
                f"definition for {sorted(self.value_columns) or self.context!r} has no request; "
                "did you forget to define request in your toml file?"
            )
        if not self.value_columns:
            raise ValueError(
                f"definition for query {self.query!r} has no metricsdesc; "
                "did you forget to define metricsdesc in your toml file?"
            )
        if self.name_field and self.labels:
            logger.warning(
                "Definition %r sets both labels and fieldtoappend; labels %s are dropped",
                self.context,
                list(self.labels),
            )
        return self

    @property
    def uses_field_naming(self) -> bool:
        return self.name_field is not None

    def effective_timeout(self, default: float) -> float:
        return self.timeout if self.timeout is not None else default
