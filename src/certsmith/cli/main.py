"""certsmith command-line entry point.

Usage::

    certsmith -c /etc/certsmith/config.yaml
    certsmith -c config.yaml --validate-only
    certsmith -c config.yaml serve --dev
    certsmith -c config.yaml db status
    certsmith -c config.yaml renew
    certsmith -c config.yaml renew --domain example.com --force
    certsmith -c config.yaml providers
    python -m certsmith -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from certsmith.config.certsmith_config import CertsmithConfig

log = logging.getLogger(__name__)


def _get_version() -> str:
    from certsmith import __version__  # noqa: PLC0415

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certsmith",
        description="certsmith: domain and TLS certificate lifecycle orchestrator",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Start the certsmith server")
    serve_parser.add_argument("--dev", action="store_true", default=False, dest="dev")

    db_parser = subparsers.add_parser("db", help="Database management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("status", help="Check database connectivity and table counts")

    renew_parser = subparsers.add_parser("renew", help="Run one renewal sweep and exit")
    renew_parser.add_argument(
        "--domain",
        metavar="NAME",
        help="Renew only this domain (id or name) instead of sweeping.",
    )
    renew_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="With --domain: renew even if the certificate is not due.",
    )

    subparsers.add_parser("providers", help="Initialise and list the DNS providers")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"certsmith: error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, dispatches."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # basic stderr logging until config is loaded
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        from certsmith.config import CertsmithConfig, ConfigValidationError  # noqa: PLC0415

        config = CertsmithConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:  # noqa: BLE001
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    from certsmith.logging import configure_logging  # noqa: PLC0415

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    command = args.command

    if command == "db":
        from certsmith.cli.commands.db import run_db  # noqa: PLC0415

        run_db(config, args)
    elif command == "renew":
        from certsmith.cli.commands.renew import run_renew  # noqa: PLC0415

        run_renew(config, args)
    elif command == "providers":
        from certsmith.cli.commands.providers import run_providers  # noqa: PLC0415

        run_providers(config, args)
    else:
        # no subcommand means serve
        from certsmith.cli.commands.serve import run_serve  # noqa: PLC0415

        _print_settings_summary(config)
        run_serve(config, args)


def _print_settings_summary(config: CertsmithConfig) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"certsmith {_get_version()}",
        f"  config:    {config.data.get('_source', '?')}",
        f"  server:    {s.server.bind}:{s.server.port} ({s.server.workers} workers)",
        f"  api:       {s.api.base_path}/domains",
        f"  database:  {s.database.user}@{s.database.host}:{s.database.port}/{s.database.database}",
        f"  storage:   {s.certs.storage_dir}",
        f"  renewal:   every {s.certs.renewal_interval_hours}h, "
        f"{s.certs.renew_before_days}d before expiry"
        f"{'' if s.certs.scheduler_enabled else ' (scheduler disabled)'}",
        f"  providers: {', '.join(p.name for p in s.providers)}",
        f"  reload:    {'enabled' if s.reload.enabled else 'disabled'}",
    ]
    sys.stdout.write("\n".join(lines) + "\n")
