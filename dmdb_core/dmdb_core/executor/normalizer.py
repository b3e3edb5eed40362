"""Convert driver-native result rows into :class:`NormalizedRow` objects.

Everything downstream of this module works on text only, so the metric
translator never needs to know which Python types a particular DBAPI driver
hands back for ``NUMBER``, ``DEC`` or ``BIGINT`` columns.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from typing import Any

from dmdb_core.models.row import NormalizedRow


def to_text(value: Any) -> str:
    """Render a single column value as text.

    ``None`` becomes the empty string and booleans become ``"1"``/``"0"``
    so they parse as numbers.  Decimals, ints and floats use their natural
    ``str`` form.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return str(value)


def normalize_row(columns: Sequence[str], values: Iterable[Any]) -> NormalizedRow:
    """Pair *columns* with *values* and lower-case the column names."""
    return NormalizedRow({column.lower(): to_text(value) for column, value in zip(columns, values, strict=True)})
