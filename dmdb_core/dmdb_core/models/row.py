"""Driver-independent view of one result row."""

from __future__ import annotations

from collections.abc import Iterator, Mapping


class NormalizedRow(Mapping[str, str]):
    """Immutable mapping of lower-cased column name to textual value.

    Lookups are case-insensitive so metric definitions may reference columns
    as ``SESSIONS``, ``Sessions`` or ``sessions`` interchangeably.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values: dict[str, str] = {str(k).lower(): v for k, v in values.items()}

    def __getitem__(self, column: str) -> str:
        return self._values[column.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, column: object) -> bool:
        return isinstance(column, str) and column.lower() in self._values

    def get(self, column: str, default: str = "") -> str:  # type: ignore[override]
        """Return the column's text, or *default* (empty string) when absent."""
        return self._values.get(column.lower(), default)

    def __repr__(self) -> str:
        return f"NormalizedRow({self._values!r})"
