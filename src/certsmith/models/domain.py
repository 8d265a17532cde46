"""Domain and alternative-domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from certsmith.core.types import DomainStatus, RecordStatus

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class Domain:
    id: UUID
    domain_name: str
    user_id: str
    dns_provider: str
    verification_method: str
    auto_renew: bool
    status: DomainStatus
    nginx_container_name: str = ""
    created_by: str = ""
    updated_by: str = ""
    deleted_by: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass(frozen=True)
class AlternativeDomain:
    id: UUID
    domain_id: UUID
    alternative_domain_name: str
    status: RecordStatus
    created_by: str = ""
    updated_by: str = ""
    deleted_by: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH


@dataclass(frozen=True)
class DomainListing:
    """A domain joined with its alternative names and live certificate.

    This is the read shape used by the list endpoint and by the renewal
    scheduler; ``cert_valid_to`` is ``None`` when the domain has no
    non-deleted certificate.
    """

    id: UUID
    domain_name: str
    user_id: str
    dns_provider: str
    verification_method: str
    auto_renew: bool
    status: DomainStatus
    nginx_container_name: str = ""
    alternative_domains: tuple[str, ...] = ()
    certificate_id: UUID | None = None
    cert_valid_from: datetime | None = None
    cert_valid_to: datetime | None = None
    created_by: str = ""
    deleted_at: datetime | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH
