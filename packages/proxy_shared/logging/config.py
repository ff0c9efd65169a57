"""Root logger setup for the proxy process.

All output goes to one stdout handler. Request context fields are attached by
``ContextFilter`` on that handler, so formatters only read ``record.context``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from . import fields
from .context import bind_context, get_context

# uvicorn's own access log duplicates RequestLoggingMiddleware output.
_QUIET_LOGGERS = ("uvicorn.access",)


class ContextFilter(logging.Filter):
    """Copy bound context fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_context()
        record.context = context
        record.__dict__.update(context)
        return True


def _record_context(record: logging.LogRecord) -> dict[str, str]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: core fields first, then bound context."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **_record_context(record),
        }
        if record.exc_info:
            line[fields.EXCEPTION] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Readable single-line output with ``key=value`` context appended."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = _record_context(record)
        if not context:
            return message
        pairs = " ".join(f"{key}={context[key]}" for key in sorted(context))
        return f"{message} {pairs}"


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
) -> None:
    """Install the stdout handler, replacing any earlier one.

    ``service`` and ``environment`` are bound as process-wide context fields.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    bind_context(
        **{fields.SERVICE: service or None, fields.ENVIRONMENT: environment or None}
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
