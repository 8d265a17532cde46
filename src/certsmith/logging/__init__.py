"""Logging subsystem for certsmith.

Public API::

    from certsmith.logging import configure_logging

    configure_logging(settings.logging)
"""

from certsmith.logging.setup import configure_logging

__all__ = ["configure_logging"]
