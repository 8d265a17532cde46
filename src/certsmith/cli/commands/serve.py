"""Serve subcommand: start the certsmith server."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import argparse

    from certsmith.config.certsmith_config import CertsmithConfig

log = logging.getLogger(__name__)


def run_serve(config: CertsmithConfig, args: argparse.Namespace) -> None:
    """Initialise the database, build the app and serve it."""
    from certsmith.app import create_app  # noqa: PLC0415
    from certsmith.core.errors import ConfigurationError  # noqa: PLC0415
    from certsmith.db import init_database  # noqa: PLC0415

    try:
        db = init_database(config.settings.database)
    except Exception as exc:  # noqa: BLE001
        if args.debug:
            raise
        sys.stderr.write(f"certsmith: error: database initialisation failed: {exc}\n")
        sys.exit(1)

    try:
        app = create_app(config=config, database=db)
    except ConfigurationError as exc:
        sys.stderr.write(f"certsmith: error: {exc.detail}\n")
        sys.exit(1)

    if args.dev:
        log.info("Starting development server (not for production)")
        app.extensions["shutdown_coordinator"].register_signals()
        app.run(
            host=config.settings.server.bind,
            port=config.settings.server.port,
            debug=args.debug,
            use_reloader=False,
        )
        return

    from certsmith.server.gunicorn_app import run_gunicorn  # noqa: PLC0415

    try:
        run_gunicorn(app, config.settings.server)
    except RuntimeError as exc:
        sys.stderr.write(f"certsmith: error: {exc}\n")
        sys.exit(1)
