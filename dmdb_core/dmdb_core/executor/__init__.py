"""Database access: handle management, row normalisation and query execution."""

from __future__ import annotations

from dmdb_core.executor.database import Database
from dmdb_core.executor.normalizer import normalize_row, to_text
from dmdb_core.executor.scraper import RowHandler, scrape_generic_values

__all__ = [
    "Database",
    "RowHandler",
    "normalize_row",
    "scrape_generic_values",
    "to_text",
]
