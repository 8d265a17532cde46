"""Entity models for the certsmith persistence layer.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from certsmith.models.certificate import Certificate
from certsmith.models.domain import AlternativeDomain, Domain, DomainListing
from certsmith.models.requests import (
    CreateDomainRequest,
    DeleteDomainRequest,
    DomainPage,
    DomainQuery,
)

__all__ = [
    "AlternativeDomain",
    "Certificate",
    "CreateDomainRequest",
    "DeleteDomainRequest",
    "Domain",
    "DomainListing",
    "DomainPage",
    "DomainQuery",
]
