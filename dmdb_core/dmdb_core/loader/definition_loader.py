"""Load metric definitions from TOML files.

A definitions file is a sequence of ``[[metric]]`` tables::

    [[metric]]
    context = "sessions"
    labels = ["state"]
    metricsdesc = { value = "Number of sessions by state." }
    request = "SELECT state, COUNT(*) AS value FROM v$sessions GROUP BY state"

Key names are matched case-insensitively, so ``MetricsDesc`` and
``metricsdesc`` are equivalent.

Typical usage::

    definitions = load_all_definitions(Path("default-metrics.toml"), custom_path)
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dmdb_core.errors import DefinitionError, DefinitionFileError
from dmdb_core.models.definition import MetricDefinition

logger = logging.getLogger(__name__)


def parse_definitions(document: dict[str, Any], source: str = "<memory>") -> list[MetricDefinition]:
    """Build definitions from an already-parsed TOML document.

    Raises
    ------
    DefinitionError
        If the document has no ``metric`` array or any entry is invalid.
        The message names *source* and the zero-based entry index.
    """
    entries: Any = None
    for key, value in document.items():
        if key.lower() == "metric":
            entries = value
            break

    if entries is None:
        return []
    if not isinstance(entries, list):
        raise DefinitionError(f"{source}: 'metric' must be an array of tables, got {type(entries).__name__}")

    definitions: list[MetricDefinition] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DefinitionError(f"{source}: metric #{index} is not a table")
        try:
            definitions.append(MetricDefinition.model_validate(entry))
        except ValidationError as exc:
            details = "; ".join(err["msg"] for err in exc.errors())
            raise DefinitionError(f"{source}: metric #{index} is invalid: {details}") from exc

    return definitions


def load_definitions(path: Path) -> list[MetricDefinition]:
    """Read and validate every definition in the TOML file at *path*."""
    try:
        with path.open("rb") as fh:
            document = tomllib.load(fh)
    except OSError as exc:
        raise DefinitionFileError(f"Error while loading {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise DefinitionFileError(f"Error while parsing {path}: {exc}") from exc

    definitions = parse_definitions(document, source=str(path))
    logger.info("Successfully loaded %d metric definition(s) from %s", len(definitions), path)
    return definitions


def load_all_definitions(default_path: Path, custom_path: Path | None = None) -> list[MetricDefinition]:
    """Load the default definitions, followed by the custom ones if configured."""
    definitions = load_definitions(default_path)
    if custom_path is None:
        logger.info("No custom metrics defined.")
        return definitions

    definitions.extend(load_definitions(custom_path))
    return definitions
