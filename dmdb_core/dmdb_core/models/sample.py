"""Observability sample emitted by the metric translator."""

from __future__ import annotations

from dataclasses import dataclass, field

from dmdb_core.models.definition import MetricKind


@dataclass(frozen=True, slots=True)
class Sample:
    """One data point ready for exposition.

    ``labels`` preserves the definition's label order; field-derived names
    always carry an empty label tuple.
    """

    name: str
    kind: MetricKind
    value: float
    help: str = ""
    labels: tuple[tuple[str, str], ...] = field(default=())

    @property
    def label_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.labels)

    @property
    def label_values(self) -> tuple[str, ...]:
        return tuple(value for _, value in self.labels)

    def label_dict(self) -> dict[str, str]:
        return dict(self.labels)
