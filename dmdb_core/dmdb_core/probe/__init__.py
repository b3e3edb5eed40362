"""Multi-target ("probe") request resolution."""

from dmdb_core.probe.resolver import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    resolve_target,
    section_for_module,
    split_target,
)

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "resolve_target",
    "section_for_module",
    "split_target",
]
