"""Resolve a probe request's ``target``/``module`` into connection parameters.

Probe mode lets one exporter process serve many databases: each scrape
request names the database (``target=host[:port]``) and the credential
section to use (``module``).  Credentials never travel in the request; they
come from the :class:`CredentialStore` loaded at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import SecretStr

from dmdb_core.errors import InvalidPortError, MissingCredentialsError, SectionNotFoundError
from dmdb_core.loader.credentials import DEFAULT_SECTION, CredentialStore
from dmdb_core.models.target import ConnectionTarget

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5236
_MAX_PORT = 65535


def section_for_module(module: str) -> str:
    """Map a module name to its credential section.

    ``""`` and ``"default"`` select ``[client]``; anything else selects
    ``[client.<module>]``.
    """
    if module in ("", "default"):
        return DEFAULT_SECTION
    return f"{DEFAULT_SECTION}.{module}"


def _parse_port(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()) or int(raw) > _MAX_PORT:
        raise InvalidPortError(f"invalid port {raw}")
    return int(raw)


def split_target(target: str) -> tuple[str, int]:
    """Split ``host[:port]`` into its parts; absent parts are ``""`` and ``0``."""
    if not target:
        return ("", 0)
    host, sep, port = target.partition(":")
    if not sep:
        return (host, 0)
    return (host, _parse_port(port))


def resolve_target(
    target: str,
    module: str,
    store: CredentialStore,
    *,
    driver: str = "dm+dmPython",
    options: Mapping[str, str] | None = None,
) -> ConnectionTarget:
    """Build the :class:`ConnectionTarget` for one probe request.

    Host and port fall back to the ``[client]`` section (then to
    ``localhost:5236``) when the request omits them.  User and password come
    from the module's own section only.

    Raises
    ------
    InvalidPortError
        If *target* carries a port that is not an unsigned 16-bit integer.
    SectionNotFoundError
        If the module's section does not exist.
    MissingCredentialsError
        If the section lacks a user or a password.
    """
    host, port = split_target(target)

    section = section_for_module(module)
    if not store.has_section(section):
        raise SectionNotFoundError(f"didn't find section [{section}] in config")

    if not host:
        host = store.get(DEFAULT_SECTION, "host", DEFAULT_HOST)
    if port == 0:
        # A configured port of 0 counts as unset, like an absent one.
        port = _parse_port(store.get(DEFAULT_SECTION, "port", str(DEFAULT_PORT))) or DEFAULT_PORT

    user = store.get(section, "user")
    password = store.get(section, "password")
    if not user or not password:
        raise MissingCredentialsError(f"no user or password specified under [{section}] in config")

    resolved = ConnectionTarget(
        host=host,
        port=port,
        user=user,
        password=SecretStr(password),
        driver=driver,
        options=dict(options or {}),
    )
    logger.debug("Resolved target %r (module %r) to %s", target, module, resolved.masked_dsn())
    return resolved
