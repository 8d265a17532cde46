"""Detached artifact cleanup after a domain is deleted.

Cleanup runs on a small thread pool so the delete request returns as
soon as its transaction commits.  Outcomes go to this module's logger
only; nothing feeds back into the delete result.  A domain recreated
under the same name before its cleanup runs keeps its artifacts.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from certsmith.providers.base import ArtifactNotFound, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

    from certsmith.providers.registry import ProviderRegistry

log = logging.getLogger(__name__)


class ArtifactCleaner:
    """Fire-and-forget ``delete_artifacts`` through the first provider."""

    def __init__(
        self,
        registry: ProviderRegistry,
        max_workers: int = 2,
        domain_exists: Callable[[str], bool] | None = None,
    ) -> None:
        self._registry = registry
        self._domain_exists = domain_exists
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="artifact-cleanup",
        )
        self._shutdown_event = threading.Event()

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown_event.is_set()

    def submit(self, domain: str) -> Future | None:
        """Schedule removal of *domain*'s artifacts; never raises."""
        if self._shutdown_event.is_set():
            log.warning("Cleaner shut down; artifacts for %s left on disk", domain)
            return None
        try:
            return self._executor.submit(self._run, domain)
        except RuntimeError:
            log.warning("Executor shut down; artifacts for %s left on disk", domain)
            return None

    def _run(self, domain: str) -> bool:
        if self._keep_artifacts(domain):
            return False
        try:
            self._registry.first.delete_artifacts(domain)
        except ArtifactNotFound:
            log.warning("No stored artifacts to remove for %s", domain)
            return False
        except ProviderError as exc:
            log.error("Artifact cleanup for %s failed: %s", domain, exc.detail)
            return False
        except Exception:  # noqa: BLE001
            log.exception("Artifact cleanup for %s failed unexpectedly", domain)
            return False
        log.info("Artifacts for %s removed", domain)
        return True

    def _keep_artifacts(self, domain: str) -> bool:
        if self._domain_exists is None:
            return False
        try:
            exists = self._domain_exists(domain)
        except Exception:  # noqa: BLE001
            log.exception("Could not re-check %s before cleanup; artifacts left on disk", domain)
            return True
        if exists:
            log.info("Domain %s was created again; keeping its artifacts", domain)
        return exists

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; safe to call more than once."""
        if self._shutdown_event.is_set():
            return
        self._shutdown_event.set()
        self._executor.shutdown(wait=wait)
        log.info("Artifact cleaner shut down")
