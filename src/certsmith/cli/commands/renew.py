"""Renew subcommand: run one renewal sweep (or one domain) and exit.

Exits 1 if any renewal or proxy reload failed, so the command can be
driven from cron instead of the in-process scheduler.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import argparse

    from certsmith.app.context import Container
    from certsmith.config.certsmith_config import CertsmithConfig

log = logging.getLogger(__name__)

_MANUAL_ACTOR = "cli"


def _build_container(config: CertsmithConfig) -> Container:
    from certsmith.app.context import Container  # noqa: PLC0415
    from certsmith.db import init_database  # noqa: PLC0415

    db = init_database(config.settings.database)
    return Container(db, config.settings)


def run_renew(config: CertsmithConfig, args: argparse.Namespace) -> None:
    """Handle ``certsmith renew [--domain NAME] [--force]``."""
    from certsmith.core.errors import ReloadFailed, WorkflowError  # noqa: PLC0415

    try:
        container = _build_container(config)
    except Exception as exc:  # noqa: BLE001
        if args.debug:
            raise
        sys.stderr.write(f"certsmith: error: {exc}\n")
        sys.exit(1)

    try:
        if args.domain:
            try:
                renewed = container.renewal_service.renew_by_name(
                    args.domain,
                    actor=_MANUAL_ACTOR,
                    force=args.force,
                )
            except ReloadFailed as exc:
                sys.stdout.write(f"{args.domain}: renewed, but {exc.detail}\n")
                sys.exit(1)
            except WorkflowError as exc:
                sys.stdout.write(f"{args.domain}: failed ({exc})\n")
                sys.exit(1)
            sys.stdout.write(f"{args.domain}: {'renewed' if renewed else 'not due'}\n")
            return

        result = container.scheduler.run_once()
        for label, names in (
            ("renewed", result.renewed),
            ("not due", result.skipped),
            ("failed", result.failed),
            ("reload failed", result.reload_failed),
        ):
            for name in names:
                sys.stdout.write(f"{name}: {label}\n")
        sys.stdout.write(
            f"checked {len(result.checked)}, renewed {len(result.renewed)}, "
            f"failed {len(result.failed) + len(result.reload_failed)}\n",
        )
        if not result.ok:
            sys.exit(1)
    finally:
        container.close()
