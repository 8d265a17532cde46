"""Workflow inputs and the paginated listing result."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from certsmith.core.types import VerificationMethod

if TYPE_CHECKING:
    from certsmith.models.domain import DomainListing


@dataclass(frozen=True)
class CreateDomainRequest:
    domain: str
    user_id: str
    alternative_domains: tuple[str, ...] = ()
    verification_method: str = VerificationMethod.DNS_01
    auto_renew: bool = True
    nginx_container_name: str = ""
    dns_provider: str = "no"


@dataclass(frozen=True)
class DeleteDomainRequest:
    """Select a domain by id *or* by name; id wins when both are given."""

    user_id: str
    domain_id: str = ""
    domain_name: str = ""

    @property
    def selector(self) -> str:
        return self.domain_id or self.domain_name


@dataclass(frozen=True)
class DomainQuery:
    status: str | None = None
    domain_name: str | None = None
    user_id: str | None = None
    page: int = 1
    page_size: int = 20

    def clamped(self, max_page_size: int) -> DomainQuery:
        """Return a copy with page >= 1 and 1 <= page_size <= *max_page_size*."""
        return replace(
            self,
            page=max(self.page, 1),
            page_size=min(max(self.page_size, 1), max_page_size),
        )

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class DomainPage:
    items: list[DomainListing] = field(default_factory=list)
    total_elements: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return -(-self.total_elements // self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def next_page(self) -> int | None:
        return self.page + 1 if self.has_next else None

    @property
    def prev_page(self) -> int | None:
        return self.page - 1 if self.has_prev else None
