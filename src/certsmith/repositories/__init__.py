"""Read-side repositories for the certsmith persistence layer.

All repositories extend :class:`pypgkit.BaseRepository`.  Writes that
must be atomic go through :class:`certsmith.db.UnitOfWork` instead.
"""

from certsmith.repositories.alternative_domain import AlternativeDomainRepository
from certsmith.repositories.certificate import CertificateRepository
from certsmith.repositories.domain import DomainFilters, DomainRepository

__all__ = [
    "AlternativeDomainRepository",
    "CertificateRepository",
    "DomainFilters",
    "DomainRepository",
]
