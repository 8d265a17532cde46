"""Programmatic gunicorn runner for certsmith.

Starts gunicorn with settings derived from the certsmith config
rather than requiring a separate gunicorn config file.

Usage::

    from certsmith.server.gunicorn_app import run_gunicorn

    run_gunicorn(flask_app, settings.server)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

    from certsmith.config.settings import ServerSettings

log = logging.getLogger(__name__)


def gunicorn_options(settings: ServerSettings) -> dict[str, object]:
    """Map :class:`ServerSettings` onto gunicorn config keys."""
    return {
        "bind": f"{settings.bind}:{settings.port}",
        "workers": settings.workers,
        "worker_class": settings.worker_class,
        "timeout": settings.timeout,
        "graceful_timeout": settings.graceful_timeout,
        "keepalive": settings.keepalive,
        # access logging is done by the request hooks
        "accesslog": None,
    }


def run_gunicorn(app: Flask, settings: ServerSettings) -> None:
    """Start a gunicorn server from certsmith :class:`ServerSettings`.

    Raises :class:`RuntimeError` if gunicorn is not installed (e.g. on
    Windows).
    """
    try:
        from gunicorn.app.base import BaseApplication  # noqa: PLC0415
    except ImportError:
        msg = (
            "gunicorn is not installed.  Install it with:\n"
            "    pip install gunicorn\n\n"
            "gunicorn only runs on Unix.  Use --dev for the Flask "
            "development server on Windows."
        )
        raise RuntimeError(msg) from None

    class _App(BaseApplication):
        def __init__(self, flask_app: Flask, server: ServerSettings) -> None:
            self.application = flask_app
            self._server = server
            super().__init__()

        def load_config(self) -> None:
            for key, value in gunicorn_options(self._server).items():
                self.cfg.set(key, value)

        def load(self) -> Flask:
            return self.application

    log.info(
        "Starting gunicorn on %s:%s (%d workers, %s)",
        settings.bind,
        settings.port,
        settings.workers,
        settings.worker_class,
    )
    _App(app, settings).run()
