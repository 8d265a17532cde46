"""Domain API layer: Flask blueprint registration.

Call :func:`register_blueprints` during application startup to mount
the domain routes under ``api.base_path``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

log = logging.getLogger(__name__)


def register_blueprints(app: Flask) -> None:
    """Register the domain API blueprint on the Flask application."""
    settings = app.config["CERTSMITH_SETTINGS"]
    base = settings.api.base_path.rstrip("/")

    from certsmith.api.domains import domains_bp  # noqa: PLC0415

    app.register_blueprint(domains_bp, url_prefix=base + "/domains")
    log.info("Domain API registered at %s/domains", base)
