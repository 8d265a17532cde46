"""Flask application package for certsmith.

Public API::

    from certsmith.app import create_app
"""

from certsmith.app.factory import create_app

__all__ = ["create_app"]
