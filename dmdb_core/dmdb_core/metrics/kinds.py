"""Resolve a value column's configured kind token to a :class:`MetricKind`."""

from __future__ import annotations

from collections.abc import Mapping

from dmdb_core.errors import UnknownMetricKindError
from dmdb_core.models.definition import MetricKind


def resolve_kind(column: str, kind_map: Mapping[str, str | MetricKind]) -> MetricKind:
    """Return the kind configured for *column*, defaulting to ``GAUGE``.

    Both the column lookup and the token are case-insensitive.  A column
    without an entry, or with an empty token, is a gauge.

    Raises
    ------
    UnknownMetricKindError
        If the token is non-empty and neither ``gauge`` nor ``counter``.
    """
    wanted = column.lower()
    token: str | MetricKind | None = None
    for key, value in kind_map.items():
        if key.lower() == wanted:
            token = value
            break

    if token is None:
        return MetricKind.GAUGE
    if isinstance(token, MetricKind):
        return token

    normalised = token.strip().lower()
    if not normalised:
        return MetricKind.GAUGE
    try:
        return MetricKind(normalised)
    except ValueError:
        raise UnknownMetricKindError(f"Error while getting prometheus type {normalised}") from None
