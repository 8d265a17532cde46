"""Flask application factory for certsmith.

Usage::

    from certsmith.app import create_app
    from certsmith.config import get_config
    from certsmith.db import init_database

    db  = init_database(get_config().settings.database)
    app = create_app(config=get_config(), database=db)
"""

from __future__ import annotations

import atexit
import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue
    from pypgkit import Database

    from certsmith.config.certsmith_config import CertsmithConfig
    from certsmith.providers.registry import ProviderRegistry

log = logging.getLogger(__name__)


def create_app(
    config: CertsmithConfig | None = None,
    database: Database | None = None,
    *,
    registry: ProviderRegistry | None = None,
    start_scheduler: bool = True,
) -> Flask:
    """Create and configure the certsmith Flask application.

    Parameters
    ----------
    config:
        Loaded :class:`CertsmithConfig`.  Falls back to :func:`get_config`
        when ``None``.
    database:
        Initialised :class:`Database` singleton.  When provided, the
        dependency container and the domain API are wired up.  When
        ``None`` the app still starts (useful for ``--validate-only``
        or testing) with only the health endpoints.
    registry:
        Prebuilt provider registry; built from config when ``None``.
    start_scheduler:
        Start the renewal scheduler thread (subject to
        ``certs.scheduler_enabled``).
    """
    if config is None:
        from certsmith.config import get_config  # noqa: PLC0415

        config = get_config()

    settings = config.settings

    app = Flask("certsmith")
    app.config["CERTSMITH_SETTINGS"] = settings
    app.config["CERTSMITH_CONFIG"] = config
    app.json.sort_keys = False

    # -- Graceful shutdown coordinator --------------------------------------
    from certsmith.app.shutdown import ShutdownCoordinator  # noqa: PLC0415

    shutdown_coordinator = ShutdownCoordinator(
        graceful_timeout=settings.server.graceful_timeout,
    )
    app.extensions["shutdown_coordinator"] = shutdown_coordinator
    atexit.register(shutdown_coordinator.initiate)

    # -- Error handlers (RFC 7807) ------------------------------------------
    from certsmith.app.errors import register_error_handlers  # noqa: PLC0415

    register_error_handlers(app)

    # -- Request lifecycle hooks --------------------------------------------
    from certsmith.app.middleware import register_request_hooks  # noqa: PLC0415

    register_request_hooks(app)

    # -- Infrastructure endpoints -------------------------------------------
    _register_health(app)

    # -- Dependency container -----------------------------------------------
    if database is not None:
        from certsmith.app.context import Container  # noqa: PLC0415

        container = Container(
            database,
            settings,
            registry=registry,
            shutdown_coordinator=shutdown_coordinator,
        )
        app.extensions["container"] = container
        shutdown_coordinator.on_shutdown(container.close)

        # -- Renewal scheduler ----------------------------------------------
        if start_scheduler:
            container.scheduler.start()

        # -- Domain API routes ----------------------------------------------
        from certsmith.api import register_blueprints  # noqa: PLC0415

        register_blueprints(app)

    log.info("Flask application created")
    return app


# ---------------------------------------------------------------------------
# Infrastructure endpoints
# ---------------------------------------------------------------------------


def _register_health(app: Flask) -> None:
    """Register ``/livez`` and ``/healthz`` probes."""
    from certsmith import __version__  # noqa: PLC0415

    @app.route("/livez")
    def livez() -> ResponseReturnValue:
        return jsonify({"alive": True, "version": __version__}), 200

    @app.route("/healthz")
    def healthz() -> ResponseReturnValue:
        """Return database, provider and worker status."""
        result: dict = {"status": "ok", "version": __version__}
        checks: dict = {}

        container = app.extensions.get("container")
        if container is not None:
            try:
                container.db.fetch_value("SELECT 1")
                checks["database"] = "connected"
            except Exception:  # noqa: BLE001
                checks["database"] = "disconnected"
                result["status"] = "degraded"

            checks["providers"] = list(container.registry)

            if container.settings.certs.scheduler_enabled:
                alive = container.scheduler.running
                result["workers"] = {"renewal_scheduler": "alive" if alive else "dead"}
                if not alive:
                    result["status"] = "degraded"

            shutdown_coord = app.extensions.get("shutdown_coordinator")
            if shutdown_coord is not None:
                result["shutting_down"] = shutdown_coord.is_shutting_down

        if checks:
            result["checks"] = checks

        code = 200 if result["status"] == "ok" else 503
        return jsonify(result), code
