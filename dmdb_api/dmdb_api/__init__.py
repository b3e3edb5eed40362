"""HTTP surface of the DM database Prometheus exporter."""

from __future__ import annotations

from dmdb_core import __version__

__all__ = ["__version__"]
