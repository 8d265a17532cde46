"""Periodic renewal sweep.

Daemon thread that lists every live domain with auto-renew enabled
and renews the ones that are due, one at a time.  A failure in one
domain is logged and the sweep moves on.  When a database is provided,
``pg_try_advisory_lock`` ensures only one process of a multi-worker
deployment sweeps at a time.

Usage::

    scheduler = RenewalScheduler(domain_repo, renewal_service, settings.certs, db)
    scheduler.start()
    ...
    scheduler.stop()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from certsmith.core.errors import EntityValueError, ReloadFailed, WorkflowError
from certsmith.repositories.domain import DomainFilters

if TYPE_CHECKING:
    from psycopg import Connection
    from pypgkit import Database

    from certsmith.config.settings import CertsSettings
    from certsmith.repositories.domain import DomainRepository
    from certsmith.services.renewal import RenewalService

log = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep, by domain name."""

    checked: list[str] = field(default_factory=list)
    renewed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    reload_failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.reload_failed


class RenewalScheduler:
    """Daemon thread running the renewal sweep every ``renewal_interval_hours``."""

    _ADVISORY_LOCK_ID = 731_001  # stable lock ID for the renewal sweep

    def __init__(
        self,
        domain_repo: DomainRepository,
        renewal: RenewalService,
        settings: CertsSettings,
        db: Database | None = None,
    ) -> None:
        self._domains = domain_repo
        self._renewal = renewal
        self._settings = settings
        self._db = db
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval_seconds(self) -> float:
        return self._settings.renewal_interval_hours * 3600

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background sweep thread."""
        if not self._settings.scheduler_enabled:
            log.info("Renewal scheduler disabled by configuration")
            return
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="renewal-scheduler",
            daemon=True,
        )
        self._thread.start()
        log.info(
            "Renewal scheduler started (interval=%sh, renew_before=%dd)",
            self._settings.renewal_interval_hours,
            self._settings.renew_before_days,
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal the sweep to stop and wait for the thread.

        A sweep in progress finishes its current domain first.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                log.warning("Renewal scheduler did not stop within %.0fs", timeout)
            else:
                log.info("Renewal scheduler stopped")

    def _try_acquire_leader(self, conn: Connection) -> bool:
        try:
            locked = conn.execute(
                "SELECT pg_try_advisory_lock(%s)",
                (self._ADVISORY_LOCK_ID,),
            ).fetchone()
            conn.commit()
        except Exception:  # noqa: BLE001
            log.debug("Advisory lock check failed, skipping this cycle")
            return False
        return bool(locked and locked[0])

    def _release_leader(self, conn: Connection) -> None:
        try:
            conn.execute("SELECT pg_advisory_unlock(%s)", (self._ADVISORY_LOCK_ID,))
            conn.commit()
        except Exception:  # noqa: BLE001
            log.warning("Failed to release the renewal lock", exc_info=True)

    def _sweep_as_leader(self) -> None:
        """Sweep while holding the advisory lock.

        The lock belongs to the database session that took it, so the same
        pooled connection stays checked out from lock to unlock.
        """
        try:
            with self._db.connection() as conn:
                if not self._try_acquire_leader(conn):
                    log.debug("Another process holds the renewal lock; skipping sweep")
                    return
                try:
                    self._sweep()
                finally:
                    self._release_leader(conn)
        except EntityValueError:
            raise
        except Exception:  # noqa: BLE001
            log.debug("No database connection for the renewal lock, skipping this cycle")

    def _sweep(self) -> None:
        try:
            result = self.run_once()
        except EntityValueError:
            log.critical("Renewal sweep hit a malformed entity; stopping scheduler")
            self._stop_event.set()
            raise
        except Exception:  # noqa: BLE001
            log.exception("Renewal sweep failed")
            return
        log.info(
            "Renewal sweep done: %d checked, %d renewed, %d failed",
            len(result.checked),
            len(result.renewed),
            len(result.failed) + len(result.reload_failed),
        )

    def _run(self) -> None:
        """Main loop: sweep, then wait one interval or until stopped."""
        while not self._stop_event.is_set():
            if self._db is None:
                self._sweep()
            else:
                self._sweep_as_leader()
            self._stop_event.wait(timeout=self.interval_seconds)

    def run_once(self, now: datetime | None = None) -> SweepResult:
        """Run one sweep synchronously and return what happened."""
        now = now or datetime.now(UTC)
        result = SweepResult()
        listings = [
            listing
            for listing in self._domains.list_domains(DomainFilters())
            if self._renewal.is_eligible(listing)
        ]

        for listing in listings:
            if self._stop_event.is_set():
                log.info("Renewal sweep cancelled")
                break
            name = listing.domain_name
            result.checked.append(name)
            try:
                renewed = self._renewal.renew_domain(listing, now)
            except EntityValueError:
                raise
            except ReloadFailed as exc:
                log.error("Certificate for %s renewed but reload failed: %s", name, exc.detail)
                result.reload_failed.append(name)
                continue
            except WorkflowError as exc:
                log.error("Renewal of %s failed: %s", name, exc)
                result.failed.append(name)
                continue
            except Exception:  # noqa: BLE001
                log.exception("Renewal of %s failed unexpectedly", name)
                result.failed.append(name)
                continue
            (result.renewed if renewed else result.skipped).append(name)

        return result
