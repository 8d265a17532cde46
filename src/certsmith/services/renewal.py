"""Certificate renewal workflow.

Renew re-issues the certificate of an existing domain once it is within
``certs.renew_before_days`` of expiry.  Unlike Create, a failed
issuance or artifact write is *recorded*: the domain is moved to
``update_failed`` in a small transaction of its own so its degraded
state is visible.  After a successful commit the dependent reverse
proxy is reloaded; a reload failure surfaces as
:class:`~certsmith.core.errors.ReloadFailed`, distinct from a failed
renewal.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import psycopg

from certsmith.core.entity import Entity, EntityBuilder
from certsmith.core.errors import (
    CommitFailed,
    ConfigurationError,
    EntityValueError,
    IssuanceFailed,
    NotFound,
    PersistenceFailed,
    StorageFailed,
    WorkflowError,
)
from certsmith.core.types import SYSTEM_RENEWAL_ACTOR, DomainStatus, EventType, RecordStatus
from certsmith.logging import lifecycle_events

if TYPE_CHECKING:
    from collections.abc import Callable

    from certsmith.config.settings import CertsSettings
    from certsmith.db.unit_of_work import UnitOfWork
    from certsmith.models.domain import DomainListing
    from certsmith.providers.base import ArtifactPaths, CertificateMaterial
    from certsmith.providers.registry import ProviderRegistry
    from certsmith.repositories.domain import DomainRepository
    from certsmith.services.events import EventRecorder
    from certsmith.services.reload import ProxyReloader

log = logging.getLogger(__name__)


class RenewalService:
    """Renew the certificate of one domain, on schedule or ad hoc."""

    def __init__(  # noqa: PLR0913
        self,
        domain_repo: DomainRepository,
        registry: ProviderRegistry,
        events: EventRecorder,
        reloader: ProxyReloader,
        certs_settings: CertsSettings,
        uow_factory: Callable[[], UnitOfWork],
    ) -> None:
        self._domains = domain_repo
        self._registry = registry
        self._events = events
        self._reloader = reloader
        self._certs = certs_settings
        self._uow_factory = uow_factory

    @property
    def renew_before(self) -> timedelta:
        return timedelta(days=self._certs.renew_before_days)

    def is_eligible(self, listing: DomainListing) -> bool:
        """Whether *listing* takes part in automatic renewal at all."""
        return listing.auto_renew and listing.status != DomainStatus.DELETED

    def is_due(self, listing: DomainListing, now: datetime | None = None) -> bool:
        """Whether *listing* should be renewed at *now*.

        A domain without a live certificate is always due.
        """
        if not self.is_eligible(listing):
            return False
        if listing.cert_valid_to is None:
            return True
        now = now or datetime.now(UTC)
        return now >= listing.cert_valid_to - self.renew_before

    # -- renew -----------------------------------------------------------------

    def renew_by_name(
        self,
        name: str,
        actor: str = SYSTEM_RENEWAL_ACTOR,
        *,
        force: bool = False,
    ) -> bool:
        """Look up a domain by id or name and renew it.

        Raises
        ------
        NotFound
            No live domain matches *name*.
        """
        listing = self._domains.find_listing(name)
        if listing is None or listing.status == DomainStatus.DELETED:
            raise NotFound("resolve", name, f"domain {name!r} not found")
        return self.renew_domain(listing, actor=actor, force=force)

    def renew_domain(
        self,
        listing: DomainListing,
        now: datetime | None = None,
        actor: str = SYSTEM_RENEWAL_ACTOR,
        *,
        force: bool = False,
    ) -> bool:
        """Renew *listing*'s certificate if it is due.

        Returns ``False`` when the domain was skipped (deleted, auto-renew
        off, or not yet due) without touching the provider or the
        database.  ``force`` renews a live domain regardless of
        auto-renew and the due date.

        Raises
        ------
        ConfigurationError, IssuanceFailed, StorageFailed
            The domain has been marked ``update_failed``.
        PersistenceFailed, CommitFailed
            The renewal transaction was rolled back.
        ReloadFailed
            The certificate was renewed but the proxy reload failed.
        """
        name = listing.domain_name
        now = now or datetime.now(UTC)
        if listing.status == DomainStatus.DELETED:
            log.debug("Skipping renewal of deleted domain %s", name)
            return False
        if not force and not self.is_due(listing, now):
            log.debug("Renewal of %s not due (valid until %s)", name, listing.cert_valid_to)
            return False

        domain_id = str(listing.id)
        try:
            provider = self._registry.resolve(listing.dns_provider)
        except ConfigurationError as exc:
            self._mark_update_failed(domain_id, name, actor, "resolve_provider", exc.detail)
            raise ConfigurationError("resolve_provider", name, exc.detail) from exc

        try:
            material = provider.issue(name, list(listing.alternative_domains))
        except Exception as exc:  # noqa: BLE001
            detail = getattr(exc, "detail", str(exc))
            reason = f"certificate issuance failed: {detail}"
            self._mark_update_failed(domain_id, name, actor, "issue", reason)
            raise IssuanceFailed("issue", name) from exc

        try:
            paths = provider.persist_artifacts(name, material)
        except Exception as exc:  # noqa: BLE001
            detail = getattr(exc, "detail", str(exc))
            reason = f"storing artifacts failed: {detail}"
            self._mark_update_failed(domain_id, name, actor, "persist_artifacts", reason)
            lifecycle_events.reconciliation_required(
                name, "persist_artifacts", provider.artifact_dir(name), detail
            )
            raise StorageFailed("persist_artifacts", name) from exc

        try:
            self._persist_renewal(domain_id, name, actor, material, paths)
        except (PersistenceFailed, CommitFailed) as exc:
            lifecycle_events.workflow_failed("renew", exc.step, name, exc.detail, actor)
            lifecycle_events.reconciliation_required(name, exc.step, paths.directory, exc.detail)
            self._events.write_safely(
                EventType.FAILED, f"renew {name}: {exc.detail}", actor, domain_id
            )
            raise

        lifecycle_events.certificate_renewed(domain_id, name, material.valid_to, actor)
        log.info("Certificate for %s renewed, valid until %s", name, material.valid_to)

        self._reloader.reload(listing.nginx_container_name, name)
        return True

    def _persist_renewal(
        self,
        domain_id: str,
        name: str,
        actor: str,
        material: CertificateMaterial,
        paths: ArtifactPaths,
    ) -> None:
        now = datetime.now(UTC)
        certificate = _renewed_certificate_entity(material, paths, actor, now)
        activate = (
            EntityBuilder("domains")
            .text("status", DomainStatus.ACTIVE.value)
            .text("updated_by", actor)
            .timestamp("updated_at", now)
            .build()
        )
        message = f"certificate for {name} renewed, valid until {material.valid_to.isoformat()}"

        try:
            with self._uow_factory() as uow:
                try:
                    certificate_id = uow.lookup_id(
                        EntityBuilder("certificates").text("domain_id", domain_id).build(),
                    )
                    if certificate_id:
                        uow.update(certificate, certificate_id)
                    else:
                        uow.insert(
                            _with_owner(certificate, domain_id, self._certs.issuer, actor, now)
                        )
                    uow.update(activate, domain_id)
                    self._events.write(uow, EventType.RENEWED, message, actor, domain_id, now)
                except psycopg.Error as exc:
                    msg = f"database write failed: {exc}"
                    raise PersistenceFailed("update_certificate", name, msg) from exc

                try:
                    uow.commit()
                except Exception as exc:  # noqa: BLE001
                    raise CommitFailed("commit", name, f"transaction commit failed: {exc}") from exc
        except WorkflowError:
            raise
        except psycopg.Error as exc:
            raise PersistenceFailed("begin", name, f"could not open transaction: {exc}") from exc

    def _mark_update_failed(
        self,
        domain_id: str,
        name: str,
        actor: str,
        step: str,
        reason: str,
    ) -> None:
        """Record a failed renewal as a persisted status change.

        Runs in its own transaction.  Failure to record is logged; the
        caller still raises the original error.
        """
        lifecycle_events.workflow_failed("renew", step, name, reason, actor)
        now = datetime.now(UTC)
        degraded = (
            EntityBuilder("domains")
            .text("status", DomainStatus.UPDATE_FAILED.value)
            .text("updated_by", actor)
            .timestamp("updated_at", now)
            .build()
        )
        try:
            with self._uow_factory() as uow:
                uow.update(degraded, domain_id)
                self._events.write(
                    uow, EventType.FAILED, f"renew {name}: {reason}", actor, domain_id, now
                )
                uow.commit()
        except EntityValueError:
            raise
        except Exception:  # noqa: BLE001
            log.exception("Could not mark %s as %s", name, DomainStatus.UPDATE_FAILED.value)


def _renewed_certificate_entity(
    material: CertificateMaterial,
    paths: ArtifactPaths,
    actor: str,
    now: datetime,
) -> Entity:
    return (
        EntityBuilder("certificates")
        .text("cert_path", paths.cert_path)
        .text("key_path", paths.key_path)
        .text("chain_path", paths.chain_path)
        .timestamp("valid_from", material.valid_from)
        .timestamp("valid_to", material.valid_to)
        .text("status", RecordStatus.ACTIVE.value)
        .text("updated_by", actor)
        .timestamp("updated_at", now)
        .build()
    )


def _with_owner(
    certificate: Entity,
    domain_id: str,
    issuer: str,
    actor: str,
    now: datetime,
) -> Entity:
    """Turn an update entity into a full insert for a domain with no live certificate."""
    builder = EntityBuilder("certificates")
    for column, value in certificate.columns().items():
        builder.set(column, value)
    return (
        builder.text("domain_id", domain_id)
        .text("issuer", issuer)
        .text("created_by", actor)
        .timestamp("created_at", now)
        .build()
    )
