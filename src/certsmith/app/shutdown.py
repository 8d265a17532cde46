"""Graceful shutdown coordinator.

Tracks in-flight workflows and makes sure they complete (up to a
timeout) before the background workers are stopped and the process
exits.

Usage::

    from certsmith.app.shutdown import ShutdownCoordinator

    coordinator = ShutdownCoordinator(graceful_timeout=30)
    coordinator.on_shutdown(scheduler.stop)

    with coordinator.track("create example.com"):
        service.create_domain(req)

    coordinator.initiate()  # waits, then runs the shutdown callbacks
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

log = logging.getLogger(__name__)


class ShutdownCoordinator:
    """Coordinates graceful shutdown by tracking in-flight operations.

    Parameters
    ----------
    graceful_timeout:
        Maximum seconds to wait for in-flight operations during shutdown.
    """

    def __init__(self, graceful_timeout: int = 30) -> None:
        self._graceful_timeout = graceful_timeout
        self._shutdown_flag = threading.Event()
        self._in_flight = 0
        self._lock = threading.Lock()
        self._done = threading.Condition(self._lock)
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown_flag.is_set()

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return self._in_flight

    def on_shutdown(self, callback: Callable[[], None]) -> None:
        """Register *callback* to run once in-flight work has drained.

        Callbacks run in registration order.
        """
        self._callbacks.append(callback)

    @contextmanager
    def track(self, name: str) -> Generator[None, None, None]:
        """Context manager to track an in-flight operation.

        Work that starts after shutdown began still runs to completion;
        workflows cannot be cancelled mid-flight.
        """
        if self._shutdown_flag.is_set():
            log.warning("Operation '%s' starting during shutdown", name)

        with self._lock:
            self._in_flight += 1

        try:
            yield
        finally:
            with self._done:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._done.notify_all()

    def initiate(self) -> None:
        """Begin graceful shutdown; safe to call more than once."""
        if self._shutdown_flag.is_set():
            return

        self._shutdown_flag.set()
        log.info("Graceful shutdown initiated")

        with self._done:
            deadline = time.monotonic() + self._graceful_timeout
            while self._in_flight > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    log.warning(
                        "Shutdown timeout expired with %d operations in flight",
                        self._in_flight,
                    )
                    break
                self._done.wait(timeout=remaining)

        if self._in_flight == 0:
            log.info("All in-flight operations completed")

        for callback in self._callbacks:
            try:
                callback()
            except Exception:  # noqa: BLE001
                log.exception("Shutdown callback %r failed", callback)

    def register_signals(self) -> None:
        """Register SIGTERM and SIGINT handlers to initiate shutdown.

        Must be called from the main thread.
        """
        try:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)
        except (ValueError, OSError):
            log.debug("Could not register signal handlers (not main thread)")

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        log.info("Received %s, initiating graceful shutdown", sig_name)
        threading.Thread(
            target=self.initiate,
            name="shutdown-coordinator",
            daemon=True,
        ).start()
