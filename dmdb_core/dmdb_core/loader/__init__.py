"""Metric definition files and the probe-mode credential store."""

from dmdb_core.loader.credentials import DEFAULT_SECTION, CredentialStore
from dmdb_core.loader.definition_loader import (
    load_all_definitions,
    load_definitions,
    parse_definitions,
)

__all__ = [
    "DEFAULT_SECTION",
    "CredentialStore",
    "load_all_definitions",
    "load_definitions",
    "parse_definitions",
]
