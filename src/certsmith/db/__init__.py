"""Database subsystem for certsmith.

Public API::

    from certsmith.db import init_database, UnitOfWork
"""

from certsmith.db.init import init_database
from certsmith.db.unit_of_work import UnitOfWork

__all__ = [
    "UnitOfWork",
    "init_database",
]
