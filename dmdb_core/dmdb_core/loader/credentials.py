"""Section-keyed credential store for probe mode.

Credentials live in a MySQL-style ``.cnf`` file::

    [client]
    host = 10.0.0.5
    port = 5236
    user = SYSDBA
    password = secret

    [client.reporting]
    user = MONITOR
    password = other-secret

The file is read once at startup; the resulting :class:`CredentialStore`
is read-only and safe to share between request handlers.
"""

from __future__ import annotations

import configparser
import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from dmdb_core.errors import CredentialFileError

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "client"


def _new_parser() -> configparser.ConfigParser:
    # Boolean keys (``skip-ssl``) are legal in .cnf files, and passwords may
    # contain '%', so interpolation is disabled.
    return configparser.ConfigParser(allow_no_value=True, interpolation=None, strict=False)


class CredentialStore:
    """Immutable lookup of ``section -> key -> value``."""

    def __init__(self, sections: Mapping[str, Mapping[str, str | None]]) -> None:
        self._sections: Mapping[str, Mapping[str, str]] = MappingProxyType(
            {
                name: MappingProxyType({k.lower(): (v or "") for k, v in values.items()})
                for name, values in sections.items()
            }
        )

    # -- Construction ---------------------------------------------------------

    @classmethod
    def from_string(cls, text: str, source: str = "<string>") -> CredentialStore:
        parser = _new_parser()
        try:
            parser.read_string(text, source=source)
        except configparser.Error as exc:
            raise CredentialFileError(f"Error parsing config, file: {source}, err: {exc}") from exc
        return cls({name: dict(parser.items(name, raw=True)) for name in parser.sections()})

    @classmethod
    def from_file(cls, path: Path) -> CredentialStore:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CredentialFileError(f"Error parsing config, file: {path}, err: {exc}") from exc
        store = cls.from_string(text, source=str(path))
        logger.info("Loaded %d credential section(s) from %s", len(store.sections()), path)
        return store

    # -- Lookups --------------------------------------------------------------

    def sections(self) -> list[str]:
        return list(self._sections)

    def has_section(self, name: str) -> bool:
        return name in self._sections

    def get(self, section: str, key: str, default: str = "") -> str:
        """Return the value of *key* in *section*, or *default* when either is absent
        or the value is empty."""
        values = self._sections.get(section)
        if values is None:
            return default
        return values.get(key.lower()) or default
