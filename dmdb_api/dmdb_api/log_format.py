"""Log formatters and root-logger setup for the exporter process.

Two output formats are supported, selected by ``LOG_FORMAT``:

``logfmt`` (default)
    One ``key=value`` line per record, the format Prometheus exporters
    traditionally emit::

        ts=2025-05-15T12:34:56.789+00:00 level=info logger=dmdb_core.metrics.collector msg="Reconnecting to DB"

``json``
    One JSON object per line for log aggregators (Loki, ELK, Datadog)::

        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "..."}

Structured request context attached by :class:`RequestLoggingMiddleware`
(``extra={"request": {...}}``) is flattened into logfmt pairs or nested
under ``"request"`` in JSON.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from dmdb_core.config import LogFormat, Settings


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")


def _exception_text(record: logging.LogRecord) -> str | None:
    if record.exc_info and record.exc_info[0] is not None:
        return "".join(traceback.format_exception(*record.exc_info))
    return None


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_data = getattr(record, "request", None)
        if request_data is not None:
            payload["request"] = request_data

        exc_text = _exception_text(record)
        if exc_text is not None:
            payload["exc_info"] = exc_text

        return json.dumps(payload, default=str, ensure_ascii=False)


def _logfmt_value(value: Any) -> str:
    text = "" if value is None else str(value)
    if text and not any(ch in text for ch in ' ="\n\t'):
        return text
    return json.dumps(text, ensure_ascii=False)


class LogfmtFormatter(logging.Formatter):
    """Format log records as ``key=value`` pairs on a single line."""

    def format(self, record: logging.LogRecord) -> str:
        pairs: list[tuple[str, Any]] = [
            ("ts", _timestamp(record)),
            ("level", record.levelname.lower()),
            ("logger", record.name),
            ("msg", record.getMessage()),
        ]

        request_data = getattr(record, "request", None)
        if isinstance(request_data, dict):
            pairs.extend(request_data.items())

        exc_text = _exception_text(record)
        if exc_text is not None:
            pairs.append(("err", exc_text.rstrip()))

        return " ".join(f"{key}={_logfmt_value(value)}" for key, value in pairs)


def build_formatter(log_format: LogFormat) -> logging.Formatter:
    if log_format is LogFormat.JSON:
        return JSONFormatter()
    return LogfmtFormatter()


def configure_logging(settings: Settings) -> None:
    """Route every logger through one stderr handler in the configured format.

    Replaces any handlers already installed on the root logger and quiets
    uvicorn's own access log, which :class:`RequestLoggingMiddleware`
    supersedes.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(settings.log_format))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level_number)

    for name in ("uvicorn", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
    logging.getLogger("uvicorn.access").disabled = True
