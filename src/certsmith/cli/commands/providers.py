"""Providers subcommand: initialise every configured DNS provider."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import argparse

    from certsmith.config.certsmith_config import CertsmithConfig

log = logging.getLogger(__name__)


def run_providers(config: CertsmithConfig, args: argparse.Namespace) -> None:
    """Load and start-check each provider, printing one line per provider.

    Exits 1 if any configured provider is unusable.
    """
    from certsmith.providers.base import ProviderError  # noqa: PLC0415
    from certsmith.providers.registry import load_provider  # noqa: PLC0415

    settings = config.settings
    failures = 0
    for index, entry in enumerate(settings.providers):
        marker = " (default)" if index == 0 else ""
        try:
            provider = load_provider(entry, settings.certs)
            provider.startup_check()
        except ProviderError as exc:
            if args.debug:
                log.debug("Provider %s failed", entry.name, exc_info=True)
            failures += 1
            sys.stdout.write(f"{entry.name}{marker}: FAILED ({exc.detail})\n")
            continue
        sys.stdout.write(f"{entry.name}{marker}: ok (backend {entry.backend})\n")

    if failures:
        sys.exit(1)
