"""Domain models for the dmdb-exporter engine."""

from dmdb_core.models.definition import MetricDefinition, MetricKind
from dmdb_core.models.row import NormalizedRow
from dmdb_core.models.sample import Sample
from dmdb_core.models.target import ConnectionTarget

__all__ = [
    "ConnectionTarget",
    "MetricDefinition",
    "MetricKind",
    "NormalizedRow",
    "Sample",
]
