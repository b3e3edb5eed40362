"""Query-to-metrics engine for the DM database Prometheus exporter."""

from __future__ import annotations

__version__ = "0.1.0"

# Prefix of every metric name the exporter emits.
NAMESPACE = "dmdb"

# Subsystem used for the exporter's own health metrics.
EXPORTER_SUBSYSTEM = "exporter"
