"""Structured logging configuration for certsmith.

Provides JSON and text formatters, a request-context filter that
injects Flask ``g`` attributes into every log record, and a one-call
``configure_logging`` function driven by config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from certsmith.config.settings import LoggingSettings

ROOT_LOGGER = "certsmith"
ACCESS_LOGGER = "certsmith.access"
AUDIT_LOGGER = "certsmith.audit"

# Standard LogRecord attributes; everything else is an "extra".
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class RequestContextFilter(logging.Filter):
    """Inject Flask request context into every log record.

    Adds ``request_id``, ``client_ip``, ``user_id``, ``method`` and
    ``path``.  Outside a request (scheduler thread, CLI) they default
    to ``"-"`` / ``None``.
    """

    CONTEXT_ATTRS = ("request_id", "client_ip", "user_id", "method", "path")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.__dict__.setdefault("request_id", "-")
        record.__dict__.setdefault("client_ip", "-")
        record.__dict__.setdefault("user_id", None)
        record.__dict__.setdefault("method", None)
        record.__dict__.setdefault("path", None)

        from flask import g, has_request_context, request  # noqa: PLC0415

        if has_request_context():
            record.request_id = getattr(g, "request_id", record.request_id)  # type: ignore[attr-defined]
            record.user_id = getattr(g, "user_id", record.user_id)  # type: ignore[attr-defined]
            record.client_ip = request.remote_addr or record.client_ip  # type: ignore[attr-defined]
            record.method = request.method  # type: ignore[attr-defined]
            record.path = request.path  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for production logging.

    Every record becomes a single JSON object containing the standard
    fields, the request context (when set) and any caller extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for attr in RequestContextFilter.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value is not None and value != "-":
                data[attr] = value

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in RequestContextFilter.CONTEXT_ATTRS:
                continue
            if not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development / console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``certsmith`` logger hierarchy from settings.

    Replaces any bootstrap handlers, and attaches a rotating JSON file
    to ``certsmith.audit`` when ``settings.audit.file`` is set.
    Returns the root ``certsmith`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()
    ctx_filter = RequestContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    logging.getLogger(ACCESS_LOGGER).setLevel(logging.INFO)

    audit = logging.getLogger(AUDIT_LOGGER)
    audit.handlers.clear()
    audit.disabled = not settings.audit.enabled
    if settings.audit.enabled:
        audit.setLevel(logging.INFO)
        if settings.audit.file:
            try:
                fh = RotatingFileHandler(
                    settings.audit.file,
                    maxBytes=settings.audit.max_file_size_bytes,
                    backupCount=settings.audit.backup_count,
                )
            except OSError as exc:
                root.warning("Could not open audit log file %s: %s", settings.audit.file, exc)
            else:
                # audit output is always structured
                fh.setFormatter(StructuredFormatter())
                fh.addFilter(ctx_filter)
                audit.addHandler(fh)

    for lib in ("werkzeug", "gunicorn", "gunicorn.access", "gunicorn.error"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
