"""Workflow services.

Each service owns one lifecycle workflow and delegates reads to the
repository layer and writes to a :class:`~certsmith.db.UnitOfWork`.
"""

from certsmith.services.cleanup import ArtifactCleaner
from certsmith.services.domain import DomainService
from certsmith.services.events import EventRecorder
from certsmith.services.reload import ProxyReloader
from certsmith.services.renewal import RenewalService
from certsmith.services.scheduler import RenewalScheduler, SweepResult

__all__ = [
    "ArtifactCleaner",
    "DomainService",
    "EventRecorder",
    "ProxyReloader",
    "RenewalScheduler",
    "RenewalService",
    "SweepResult",
]
