"""Tests for configure_logging and the formatters."""

from __future__ import annotations

import json
import logging
import sys
from logging.handlers import RotatingFileHandler

import pytest
from flask import Flask, g

from certsmith.config.settings import AuditLogSettings, LoggingSettings
from certsmith.logging import configure_logging
from certsmith.logging.setup import (
    AUDIT_LOGGER,
    ROOT_LOGGER,
    RequestContextFilter,
    StructuredFormatter,
    TextFormatter,
)


def _settings(fmt="json", level="INFO", audit_file=None, audit_enabled=True):
    return LoggingSettings(
        level=level,
        format=fmt,
        audit=AuditLogSettings(
            enabled=audit_enabled,
            file=audit_file,
            max_file_size_bytes=1024 * 1024,
            backup_count=2,
        ),
    )


@pytest.fixture(autouse=True)
def _restore_loggers():
    """configure_logging mutates global loggers; put them back afterwards."""
    saved = {}
    for name in (ROOT_LOGGER, AUDIT_LOGGER):
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate, logger.disabled)
    yield
    for name, (handlers, level, propagate, disabled) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate
        logger.disabled = disabled


def _record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("certsmith.test", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


class TestConfigureLogging:
    def test_json_console_handler(self):
        root = configure_logging(_settings(level="debug"))

        assert root.name == ROOT_LOGGER
        assert root.level == logging.DEBUG
        assert root.propagate is False
        (handler,) = root.handlers
        assert isinstance(handler.formatter, StructuredFormatter)
        assert any(isinstance(f, RequestContextFilter) for f in handler.filters)

    def test_text_format(self):
        root = configure_logging(_settings(fmt="text"))
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_audit_file_handler(self, tmp_path):
        audit_file = tmp_path / "audit.jsonl"
        configure_logging(_settings(audit_file=str(audit_file)))

        (handler,) = logging.getLogger(AUDIT_LOGGER).handlers
        assert isinstance(handler, RotatingFileHandler)
        assert isinstance(handler.formatter, StructuredFormatter)

    def test_unwritable_audit_file_is_a_warning(self, tmp_path):
        configure_logging(_settings(audit_file=str(tmp_path / "missing" / "audit.jsonl")))
        assert logging.getLogger(AUDIT_LOGGER).handlers == []

    def test_disabled_audit(self):
        configure_logging(_settings(audit_enabled=False))
        assert logging.getLogger(AUDIT_LOGGER).disabled is True

    def test_is_idempotent(self):
        configure_logging(_settings())
        root = configure_logging(_settings())
        assert len(root.handlers) == 1


class TestFormatters:
    def test_structured_formatter_includes_extras(self):
        record = _record(event_id="certsmith.audit.domain_created", domain_name="example.com")
        RequestContextFilter().filter(record)

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["logger"] == "certsmith.test"
        assert data["event_id"] == "certsmith.audit.domain_created"
        assert data["domain_name"] == "example.com"
        assert "request_id" not in data

    def test_structured_formatter_includes_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "certsmith.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        data = json.loads(StructuredFormatter().format(record))
        assert "ValueError: bad" in data["exception"]

    def test_text_formatter(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert "[-] certsmith.test: hello" in TextFormatter().format(record)


class TestRequestContextFilter:
    def test_injects_flask_request_context(self):
        app = Flask(__name__)
        with app.test_request_context("/certsmith/api/v1/domains", method="POST"):
            g.request_id = "req-1"
            g.user_id = "alice"
            record = _record()
            RequestContextFilter().filter(record)

        assert record.request_id == "req-1"
        assert record.user_id == "alice"
        assert record.method == "POST"
        assert record.path == "/certsmith/api/v1/domains"

    def test_defaults_outside_request(self):
        record = _record()
        RequestContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.user_id is None
