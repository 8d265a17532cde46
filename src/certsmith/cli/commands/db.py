"""Database management subcommands."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import argparse

    from certsmith.config.certsmith_config import CertsmithConfig

log = logging.getLogger(__name__)


def run_db(config: CertsmithConfig, args: argparse.Namespace) -> None:
    """Handle db subcommands."""
    if args.db_command == "status":
        _db_status(config)
    else:
        sys.stderr.write("usage: certsmith -c CONFIG db status\n")
        sys.exit(2)


def _db_status(config: CertsmithConfig) -> None:
    """Check database connectivity and print per-table row counts."""
    from certsmith.db import init_database  # noqa: PLC0415
    from certsmith.db.init import database_status  # noqa: PLC0415

    try:
        db = init_database(config.settings.database)
        status = database_status(db)
    except Exception as exc:  # noqa: BLE001
        log.debug("Database status check failed", exc_info=True)
        sys.stderr.write(f"database: unreachable ({exc})\n")
        sys.exit(1)

    sys.stdout.write(f"database: {'connected' if status['connected'] else 'not connected'}\n")
    missing = False
    for table, count in status["tables"].items():
        if count is None:
            missing = True
            sys.stdout.write(f"  {table:<20} missing\n")
        else:
            sys.stdout.write(f"  {table:<20} {count} rows\n")
    if missing or not status["connected"]:
        sys.exit(1)
