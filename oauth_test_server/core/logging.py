"""Logging setup for the OAuth2 test server.

Two output modes, picked by LOG_JSON:

  text (default): one human-readable line per record, meant for a
    developer watching the terminal while an integration suite runs
    against the server.  WARNING and above carry [file:line] so a
    rejected grant can be traced to the exact guard clause.

  json: one JSON object per line.  Useful when the server runs inside
    a CI job whose logs are collected and searched afterwards; the
    request context fields (request_id, path, status_code, ...) become
    top-level keys.

Secrets never reach the log stream: callers log client ids, user ids
and token *prefixes* only (see mask_token).
"""

from __future__ import annotations

import json
import logging
import sys

_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _with_millis(base: str, msecs: float) -> str:
    # base ends with a +HHMM offset; splice .mmm in front of it
    return f"{base[:-5]}.{int(msecs):03d}{base[-5:]}"


def mask_token(token: str | None) -> str:
    """Shorten an opaque token to a log-safe prefix."""
    if not token:
        return "-"
    return f"{token[:8]}…"


class _ContainerFormatter(logging.Formatter):
    """Single-line text formatter for stdout."""

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt=_DATEFMT)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _with_millis(super().formatTime(record, datefmt), record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        show_location = record.levelno >= logging.WARNING
        self._style._fmt = self._BASE_FMT + (self._LOC_SUFFIX if show_location else "")
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Fields attached by RequestContextMiddleware (or passed through
    ``extra=``) are copied to the top level when present.
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "client_id",
        "grant_type",
        "error",
    )

    def __init__(self) -> None:
        super().__init__(datefmt=_DATEFMT)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _with_millis(super().formatTime(record, datefmt), record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Route all logging to stdout with the selected formatter.

    Unknown level names fall back to INFO.  uvicorn and httpx loggers are
    held at WARNING or above so request noise doesn't drown the flow logs.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
