"""Tests for request ID, acting user and access logging hooks."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from flask import Flask, g, jsonify

from certsmith.app.middleware import register_request_hooks
from certsmith.config.settings import build_settings


def _make_app(settings=None):
    app = Flask("test_request_hooks")
    if settings is not None:
        app.config["CERTSMITH_SETTINGS"] = settings
    register_request_hooks(app)

    @app.route("/whoami")
    def whoami():
        return jsonify({"user": g.user_id, "request_id": g.request_id})

    @app.route("/teapot")
    def teapot():
        return "short and stout", 418

    @app.route("/broken")
    def broken():
        return "oops", 503

    return app


@pytest.fixture()
def access_log():
    with patch("certsmith.app.middleware.access_log") as mock:
        yield mock


class TestRequestId:
    def test_generated_when_absent(self, access_log):
        resp = _make_app().test_client().get("/whoami")

        request_id = resp.headers["X-Request-ID"]
        assert len(request_id) == 32
        assert resp.get_json()["request_id"] == request_id

    def test_passthrough(self, access_log):
        resp = _make_app().test_client().get("/whoami", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["X-Request-ID"] == "abc-123"

    def test_nosniff(self, access_log):
        resp = _make_app().test_client().get("/whoami")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


class TestActingUser:
    def test_default_header(self, access_log):
        resp = _make_app().test_client().get("/whoami", headers={"X-User-ID": " alice "})
        assert resp.get_json()["user"] == "alice"

    def test_missing_header_is_none(self, access_log):
        resp = _make_app().test_client().get("/whoami")
        assert resp.get_json()["user"] is None

    def test_blank_header_is_none(self, access_log):
        resp = _make_app().test_client().get("/whoami", headers={"X-User-ID": "   "})
        assert resp.get_json()["user"] is None

    def test_configured_header(self, access_log):
        settings = build_settings(
            {
                "database": {"database": "certsmith", "user": "certsmith"},
                "api": {"user_header": "X-Forwarded-User"},
            }
        )
        client = _make_app(settings).test_client()

        resp = client.get(
            "/whoami",
            headers={"X-Forwarded-User": "bob", "X-User-ID": "mallory"},
        )

        assert resp.get_json()["user"] == "bob"


class TestAccessLog:
    @pytest.mark.parametrize(
        ("path", "level", "status"),
        [
            ("/whoami", logging.INFO, 200),
            ("/teapot", logging.WARNING, 418),
            ("/broken", logging.ERROR, 503),
        ],
    )
    def test_level_follows_status(self, access_log, path, level, status):
        _make_app().test_client().get(path)

        access_log.log.assert_called_once()
        args = access_log.log.call_args.args
        assert args[0] == level
        assert args[2:5] == ("GET", path, status)
        extra = access_log.log.call_args.kwargs["extra"]
        assert extra["status"] == status
        assert extra["duration_ms"] >= 0
