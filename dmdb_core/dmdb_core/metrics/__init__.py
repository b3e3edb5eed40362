"""Result-to-metric translation and the scrape-cycle collector."""

from __future__ import annotations

from dmdb_core.metrics.collector import CollectorState, Exporter, TaskOutcome
from dmdb_core.metrics.kinds import resolve_kind
from dmdb_core.metrics.translator import build_fq_name, sanitize_name, scrape_metric, translate

__all__ = [
    "CollectorState",
    "Exporter",
    "TaskOutcome",
    "build_fq_name",
    "resolve_kind",
    "sanitize_name",
    "scrape_metric",
    "translate",
]
