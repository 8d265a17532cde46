"""Database initialisation and status checks.

Usage::

    from certsmith.config import get_config
    from certsmith.db.init import init_database

    db = init_database(get_config().settings.database)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pypgkit import Database, DatabaseConfig

if TYPE_CHECKING:
    from certsmith.config.settings import DatabaseSettings

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Tables created by schema.sql, in dependency order.
MANAGED_TABLES = ("domains", "alternative_domains", "certificates", "events")

log = logging.getLogger(__name__)


def _to_pypgkit(settings: DatabaseSettings) -> DatabaseConfig:
    return DatabaseConfig(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        user=settings.user,
        password=settings.password,
        sslmode=settings.sslmode,
        min_connections=settings.min_connections,
        max_connections=settings.max_connections,
        connection_timeout=settings.connection_timeout,
    )


def init_database(settings: DatabaseSettings) -> Database:
    """Initialise (or return) the process-wide :class:`Database`.

    When ``settings.auto_setup`` is true the bundled ``schema.sql`` is
    applied; every statement in it is idempotent.
    """
    if Database.is_initialized():
        log.debug("Database already initialised; reusing instance")
        return Database.get_instance()

    log.info(
        "Connecting to PostgreSQL %s@%s:%s/%s (pool %d..%d)",
        settings.user,
        settings.host,
        settings.port,
        settings.database,
        settings.min_connections,
        settings.max_connections,
    )
    db = Database.init(
        config=_to_pypgkit(settings),
        schema_path=SCHEMA_PATH if settings.auto_setup else None,
        auto_setup=settings.auto_setup,
        interactive=False,
    )
    log.info("Database ready (auto_setup=%s)", settings.auto_setup)
    return db


def database_status(db: Database) -> dict[str, Any]:
    """Return connectivity and per-table row counts for ``certsmith db status``.

    Missing tables are reported with a count of ``None`` instead of
    raising, so the command can be run against an empty database.
    """
    status: dict[str, Any] = {"connected": False, "tables": {}}
    status["connected"] = db.fetch_value("SELECT 1") == 1
    for table in MANAGED_TABLES:
        exists = db.fetch_value("SELECT to_regclass(%s) IS NOT NULL", (f"public.{table}",))
        if not exists:
            status["tables"][table] = None
            continue
        status["tables"][table] = db.fetch_value(f"SELECT count(*) FROM {table}")  # noqa: S608
    return status
