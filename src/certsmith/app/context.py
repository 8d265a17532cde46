"""Dependency injection container for certsmith.

Created once during application startup and stored on the Flask app
via ``app.extensions["container"]``.  Accessible from any request
context with :func:`get_container`.  The CLI builds one directly for
``renew`` and ``providers``.

Usage::

    from certsmith.app.context import get_container

    c = get_container()
    page = c.domain_service.list_domains(query)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

from certsmith.db.unit_of_work import UnitOfWork
from certsmith.providers.registry import build_registry
from certsmith.repositories import (
    AlternativeDomainRepository,
    CertificateRepository,
    DomainRepository,
)
from certsmith.services import (
    ArtifactCleaner,
    DomainService,
    EventRecorder,
    ProxyReloader,
    RenewalScheduler,
    RenewalService,
)

if TYPE_CHECKING:
    from pypgkit import Database

    from certsmith.app.shutdown import ShutdownCoordinator
    from certsmith.config.settings import CertsmithSettings
    from certsmith.providers.registry import ProviderRegistry


class Container:
    """Application-wide dependency container.

    Holds the :class:`Database` singleton, the provider registry and
    every repository and service.  Request handlers and the renewal
    scheduler share the same instances.

    Parameters
    ----------
    registry:
        A prebuilt :class:`ProviderRegistry`.  When ``None`` one is built
        from ``settings.providers``, which runs each provider's startup
        check.
    """

    def __init__(
        self,
        db: Database,
        settings: CertsmithSettings,
        registry: ProviderRegistry | None = None,
        shutdown_coordinator: ShutdownCoordinator | None = None,
    ) -> None:
        self.db: Database = db
        self.settings: CertsmithSettings = settings
        self.shutdown_coordinator = shutdown_coordinator

        # Repositories
        self.domains = DomainRepository(db)
        self.alternative_domains = AlternativeDomainRepository(db)
        self.certificates = CertificateRepository(db)

        # Providers
        self.registry: ProviderRegistry = (
            registry
            if registry is not None
            else build_registry(settings.providers, settings.certs)
        )

        # Services
        self.event_recorder = EventRecorder(self.new_unit_of_work)
        self.cleaner = ArtifactCleaner(
            self.registry,
            max_workers=settings.certs.cleanup_workers,
            domain_exists=self.domains.domain_exists,
        )
        self.reloader = ProxyReloader(settings.reload)
        self.domain_service = DomainService(
            self.domains,
            self.alternative_domains,
            self.certificates,
            self.registry,
            self.event_recorder,
            self.cleaner,
            settings.certs,
            settings.api,
            self.new_unit_of_work,
        )
        self.renewal_service = RenewalService(
            self.domains,
            self.registry,
            self.event_recorder,
            self.reloader,
            settings.certs,
            self.new_unit_of_work,
        )
        self.scheduler = RenewalScheduler(
            self.domains,
            self.renewal_service,
            settings.certs,
            db=db,
        )

    def new_unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self.db)

    def close(self) -> None:
        """Stop background work owned by the container."""
        self.scheduler.stop()
        self.cleaner.shutdown(wait=True)


def get_container() -> Container:
    """Return the :class:`Container` from the current Flask app.

    Raises :class:`RuntimeError` if the database was not initialised
    (i.e. ``create_app`` was called without a ``database`` argument).
    """
    container = current_app.extensions.get("container")
    if container is None:
        msg = (
            "Dependency container not available -- "
            "was the database initialised before "
            "create_app()?"
        )
        raise RuntimeError(msg)
    return container
