"""Domain service: create, delete and list managed domains.

Create and Delete each combine one relational transaction with side
effects that cannot be rolled back.  Create issues a certificate and
writes its files *before* opening the transaction; if anything after
issuance fails, the issued certificate is left orphaned and a
``reconciliation_required`` audit event names it.  Delete has no
irreversible prior step, so it is fully transactional; artifact
cleanup runs detached after commit and never affects the result.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import psycopg
import psycopg.errors

from certsmith.core.entity import Entity, EntityBuilder
from certsmith.core.errors import (
    AlreadyExists,
    CommitFailed,
    ConfigurationError,
    IssuanceFailed,
    NotFound,
    PersistenceFailed,
    StorageFailed,
    WorkflowError,
)
from certsmith.core.types import DomainStatus, EventType, RecordStatus
from certsmith.logging import lifecycle_events
from certsmith.models.requests import DomainPage
from certsmith.providers.base import unique_names
from certsmith.repositories.domain import DomainFilters

if TYPE_CHECKING:
    from collections.abc import Callable

    from certsmith.config.settings import ApiSettings, CertsSettings
    from certsmith.db.unit_of_work import UnitOfWork
    from certsmith.models.requests import (
        CreateDomainRequest,
        DeleteDomainRequest,
        DomainQuery,
    )
    from certsmith.providers.base import ArtifactPaths, CertificateMaterial
    from certsmith.providers.registry import ProviderRegistry
    from certsmith.repositories.alternative_domain import AlternativeDomainRepository
    from certsmith.repositories.certificate import CertificateRepository
    from certsmith.repositories.domain import DomainRepository
    from certsmith.services.cleanup import ArtifactCleaner
    from certsmith.services.events import EventRecorder

log = logging.getLogger(__name__)


class DomainService:
    """Lifecycle workflows for managed domains."""

    def __init__(  # noqa: PLR0913
        self,
        domain_repo: DomainRepository,
        alternative_repo: AlternativeDomainRepository,
        certificate_repo: CertificateRepository,
        registry: ProviderRegistry,
        events: EventRecorder,
        cleaner: ArtifactCleaner,
        certs_settings: CertsSettings,
        api_settings: ApiSettings,
        uow_factory: Callable[[], UnitOfWork],
    ) -> None:
        self._domains = domain_repo
        self._alternatives = alternative_repo
        self._certificates = certificate_repo
        self._registry = registry
        self._events = events
        self._cleaner = cleaner
        self._certs = certs_settings
        self._api = api_settings
        self._uow_factory = uow_factory

    # -- list ------------------------------------------------------------------

    def list_domains(self, query: DomainQuery) -> DomainPage:
        """Return one page of domains matching *query*."""
        query = query.clamped(self._api.max_page_size)
        filters = DomainFilters(
            name_contains=query.domain_name or None,
            status=query.status or None,
            user_id=query.user_id or None,
            limit=query.limit,
            offset=query.offset,
        )
        total = self._domains.count_domains(filters)
        items = self._domains.list_domains(filters) if total else []
        return DomainPage(
            items=items,
            total_elements=total,
            page=query.page,
            page_size=query.page_size,
        )

    # -- create ----------------------------------------------------------------

    def create_domain(self, request: CreateDomainRequest) -> str:
        """Issue a certificate for a new domain and persist it.

        Returns the new domain id.

        Raises
        ------
        AlreadyExists
            A non-deleted domain with the same name exists.
        ConfigurationError
            The requested DNS provider is not registered.
        IssuanceFailed, StorageFailed, PersistenceFailed, CommitFailed
            The named step failed; nothing is persisted.
        """
        name = request.domain.strip()
        actor = request.user_id or self._api.default_actor
        alternatives = unique_names(name, request.alternative_domains)[1:]

        if self._domains.domain_exists(name):
            raise AlreadyExists("check_exists", name)

        try:
            provider = self._registry.resolve(request.dns_provider)
        except ConfigurationError as exc:
            self._fail_create("resolve_provider", name, actor, exc.detail)
            raise ConfigurationError("resolve_provider", name, exc.detail) from exc

        try:
            material = provider.issue(name, alternatives)
        except Exception as exc:  # noqa: BLE001
            detail = getattr(exc, "detail", str(exc))
            self._fail_create("issue", name, actor, f"certificate issuance failed: {detail}")
            raise IssuanceFailed("issue", name) from exc

        try:
            paths = provider.persist_artifacts(name, material)
        except Exception as exc:  # noqa: BLE001
            detail = getattr(exc, "detail", str(exc))
            reason = f"storing artifacts failed: {detail}"
            self._fail_create("persist_artifacts", name, actor, reason)
            lifecycle_events.reconciliation_required(
                name, "persist_artifacts", provider.artifact_dir(name), detail
            )
            raise StorageFailed("persist_artifacts", name) from exc

        try:
            domain_id = self._persist_new_domain(
                request, name, alternatives, actor, material, paths
            )
        except (AlreadyExists, PersistenceFailed, CommitFailed) as exc:
            self._fail_create(exc.step, name, actor, str(exc))
            lifecycle_events.reconciliation_required(name, exc.step, paths.directory, exc.detail)
            raise

        self._events.write_safely(EventType.CREATED, f"domain {name} created", actor, domain_id)
        lifecycle_events.domain_created(domain_id, name, alternatives, provider.name, actor)
        log.info("Domain %s created (%s) via provider %s", name, domain_id, provider.name)
        return domain_id

    def _persist_new_domain(  # noqa: PLR0913
        self,
        request: CreateDomainRequest,
        name: str,
        alternatives: list[str],
        actor: str,
        material: CertificateMaterial,
        paths: ArtifactPaths,
    ) -> str:
        now = datetime.now(UTC)
        domain = (
            EntityBuilder("domains")
            .text("domain_name", name)
            .text("user_id", actor)
            .text("dns_provider", request.dns_provider)
            .text("verification_method", str(request.verification_method))
            .boolean("auto_renew", request.auto_renew)
            .text("status", DomainStatus.PENDING.value)
            .text("nginx_container_name", request.nginx_container_name)
            .text("created_by", actor)
            .text("updated_by", actor)
            .timestamp("created_at", now)
            .timestamp("updated_at", now)
            .build()
        )
        activate = (
            EntityBuilder("domains")
            .text("status", DomainStatus.ACTIVE.value)
            .text("updated_by", actor)
            .timestamp("updated_at", now)
            .build()
        )

        try:
            with self._uow_factory() as uow:
                try:
                    domain_id = uow.insert(domain)
                    for alt_name in alternatives:
                        uow.insert(_alternative_entity(domain_id, alt_name, actor, now))
                    uow.insert(self._certificate_entity(domain_id, material, paths, actor, now))
                    uow.update(activate, domain_id)
                except psycopg.errors.UniqueViolation as exc:
                    raise AlreadyExists("insert_domain", name) from exc
                except psycopg.Error as exc:
                    msg = f"database write failed: {exc}"
                    raise PersistenceFailed("insert_domain", name, msg) from exc

                try:
                    uow.commit()
                except Exception as exc:  # noqa: BLE001
                    raise CommitFailed("commit", name, f"transaction commit failed: {exc}") from exc
        except WorkflowError:
            raise
        except psycopg.Error as exc:
            # opening the transaction itself failed
            raise PersistenceFailed("begin", name, f"could not open transaction: {exc}") from exc
        return domain_id

    def _certificate_entity(
        self,
        domain_id: str,
        material: CertificateMaterial,
        paths: ArtifactPaths,
        actor: str,
        now: datetime,
    ) -> Entity:
        return (
            EntityBuilder("certificates")
            .text("domain_id", domain_id)
            .text("issuer", self._certs.issuer)
            .text("cert_path", paths.cert_path)
            .text("key_path", paths.key_path)
            .text("chain_path", paths.chain_path)
            .timestamp("valid_from", material.valid_from)
            .timestamp("valid_to", material.valid_to)
            .text("status", RecordStatus.ACTIVE.value)
            .text("created_by", actor)
            .text("updated_by", actor)
            .timestamp("created_at", now)
            .timestamp("updated_at", now)
            .build()
        )

    def _fail_create(self, step: str, name: str, actor: str, reason: str) -> None:
        lifecycle_events.workflow_failed("create", step, name, reason, actor)
        self._events.write_safely(EventType.FAILED, f"create {name}: {reason}", actor)

    # -- delete ----------------------------------------------------------------

    def delete_domain(self, request: DeleteDomainRequest) -> str:
        """Soft-delete a domain, its alternative names and its certificate.

        Returns the deleted domain's id.  Artifact cleanup is scheduled
        after commit and runs detached.

        Raises
        ------
        NotFound
            No live domain matches the selector.
        PersistenceFailed, CommitFailed
            The transaction was rolled back; nothing changed.
        """
        actor = request.user_id or self._api.default_actor
        selector = request.selector.strip()
        if not selector:
            raise NotFound("resolve", "", "domain_id or domain_name is required")

        try:
            with self._uow_factory() as uow:
                domain_id, name = self._lock_domain(uow, request)
                alternative_ids = self._alternatives.list_ids_for_domain(domain_id)
                certificate = self._certificates.find_for_domain(domain_id)
                certificate_id = str(certificate.id) if certificate else ""
                try:
                    self._mark_deleted(
                        uow, domain_id, name, alternative_ids, certificate_id, actor
                    )
                except psycopg.Error as exc:
                    msg = f"database write failed: {exc}"
                    raise PersistenceFailed("mark_deleted", name, msg) from exc

                try:
                    uow.commit()
                except Exception as exc:  # noqa: BLE001
                    raise CommitFailed("commit", name, f"transaction commit failed: {exc}") from exc
        except (PersistenceFailed, CommitFailed) as exc:
            lifecycle_events.workflow_failed("delete", exc.step, exc.domain, exc.detail, actor)
            raise
        except psycopg.Error as exc:
            raise PersistenceFailed("lookup", selector, f"database error: {exc}") from exc

        lifecycle_events.domain_deleted(domain_id, name, actor)
        log.info("Domain %s (%s) deleted by %s", name, domain_id, actor)
        self._cleaner.submit(name)
        return domain_id

    def _mark_deleted(  # noqa: PLR0913
        self,
        uow: UnitOfWork,
        domain_id: str,
        name: str,
        alternative_ids: list[str],
        certificate_id: str,
        actor: str,
    ) -> None:
        # one timestamp for every row touched by this delete
        now = datetime.now(UTC)
        uow.update(_deleted_entity("domains", actor, now, DomainStatus.DELETED), domain_id)
        alt_deleted = _deleted_entity("alternative_domains", actor, now, RecordStatus.DELETED)
        for alt_id in alternative_ids:
            uow.update(alt_deleted, alt_id)
        if certificate_id:
            cert_deleted = _deleted_entity("certificates", actor, now, RecordStatus.DELETED)
            uow.update(cert_deleted, certificate_id)
        self._events.write(uow, EventType.DELETED, f"domain {name} deleted", actor, domain_id, now)

    @staticmethod
    def _lock_domain(uow: UnitOfWork, request: DeleteDomainRequest) -> tuple[str, str]:
        """Resolve the selector inside *uow* and lock the domain row."""
        if request.domain_id:
            try:
                domain_id = str(UUID(request.domain_id.strip()))
            except ValueError as exc:
                raise NotFound("resolve", "", f"domain {request.domain_id!r} not found") from exc
        else:
            name = request.domain_name.strip()
            domain_id = uow.lookup_id(EntityBuilder("domains").text("domain_name", name).build())
            if not domain_id:
                raise NotFound("resolve", name, f"domain {name!r} not found")

        row = uow.fetch_one(
            "SELECT id, domain_name FROM domains WHERE id = %s AND deleted_at IS NULL FOR UPDATE",
            (domain_id,),
        )
        if row is None:
            raise NotFound("resolve", request.selector, f"domain {request.selector!r} not found")
        return str(row["id"]), row["domain_name"]


def _alternative_entity(domain_id: str, name: str, actor: str, now: datetime) -> Entity:
    return (
        EntityBuilder("alternative_domains")
        .text("domain_id", domain_id)
        .text("alternative_domain_name", name)
        .text("status", RecordStatus.ACTIVE.value)
        .text("created_by", actor)
        .text("updated_by", actor)
        .timestamp("created_at", now)
        .timestamp("updated_at", now)
        .build()
    )


def _deleted_entity(table: str, actor: str, now: datetime, status: str) -> Entity:
    return (
        EntityBuilder(table)
        .text("status", str(status))
        .text("deleted_by", actor)
        .text("updated_by", actor)
        .timestamp("deleted_at", now)
        .timestamp("updated_at", now)
        .build()
    )
