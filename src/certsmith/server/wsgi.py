"""WSGI entry point for external servers (gunicorn, uWSGI, etc.).

The config file path is read from the ``CERTSMITH_CONFIG`` environment
variable.

Example::

    export CERTSMITH_CONFIG=/etc/certsmith/config.yaml
    gunicorn "certsmith.server.wsgi:app"
"""

from __future__ import annotations

import os
import sys

_config_path = os.environ.get("CERTSMITH_CONFIG")
if _config_path is None:
    sys.stderr.write("CERTSMITH_CONFIG is not set\n")
    sys.exit(1)

# Bootstrap the singleton before anything else imports it.
from certsmith.config import CertsmithConfig  # noqa: E402

_config = CertsmithConfig(config_file=_config_path)

from certsmith.logging import configure_logging  # noqa: E402

configure_logging(_config.settings.logging)

from certsmith.db import init_database  # noqa: E402

_db = init_database(_config.settings.database)

from certsmith.app import create_app  # noqa: E402

app = create_app(config=_config, database=_db)
