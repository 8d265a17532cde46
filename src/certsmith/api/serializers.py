"""Response serialization for the domain API.

Each function takes a model object and produces a dictionary suitable
for ``flask.jsonify``.  Certificate file paths never leave the process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from certsmith.models.domain import DomainListing
    from certsmith.models.requests import DomainPage


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_domain(listing: DomainListing) -> dict[str, Any]:
    return {
        "id": str(listing.id),
        "domain": listing.domain_name,
        "alternativeDomains": list(listing.alternative_domains),
        "status": listing.status.value,
        "dnsProvider": listing.dns_provider,
        "verificationMethod": listing.verification_method,
        "autoRenew": listing.auto_renew,
        "nginxContainerName": listing.nginx_container_name,
        "userId": listing.user_id,
        "certificate": (
            {
                "validFrom": _iso(listing.cert_valid_from),
                "validTo": _iso(listing.cert_valid_to),
            }
            if listing.certificate_id is not None
            else None
        ),
        "createdAt": _iso(listing.created_at),
        "updatedAt": _iso(listing.updated_at),
    }


def serialize_page(page: DomainPage) -> dict[str, Any]:
    """Serialize one page of domains with its pagination links."""
    return {
        "items": [serialize_domain(item) for item in page.items],
        "page": page.page,
        "pageSize": page.page_size,
        "totalElements": page.total_elements,
        "totalPages": page.total_pages,
        "hasNext": page.has_next,
        "hasPrev": page.has_prev,
        "nextPage": page.next_page,
        "prevPage": page.prev_page,
    }
