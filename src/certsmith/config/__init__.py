"""Configuration subsystem for certsmith.

Public API::

    from certsmith.config import get_config, CertsmithConfig

    # At startup (CLI only):
    CertsmithConfig(config_file="config.yaml")

    # Everywhere else:
    cfg = get_config()
    port = cfg.settings.server.port
"""

from certsmith.config.certsmith_config import (
    NO_PREFERENCE_NAMES,
    CertsmithConfig,
    ConfigValidationError,
    get_config,
)
from certsmith.config.settings import (
    ApiSettings,
    AuditLogSettings,
    CertsmithSettings,
    CertsSettings,
    DatabaseSettings,
    LoggingSettings,
    ProviderSettings,
    ReloadSettings,
    ServerSettings,
)

__all__ = [
    "NO_PREFERENCE_NAMES",
    "ApiSettings",
    "AuditLogSettings",
    "CertsSettings",
    "CertsmithConfig",
    "CertsmithSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "LoggingSettings",
    "ProviderSettings",
    "ReloadSettings",
    "ServerSettings",
    "get_config",
]
