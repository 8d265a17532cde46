"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders are
what the application actually reads.

Access pattern::

    from certsmith.config import get_config

    certs = get_config().settings.certs
    print(certs.storage_dir, certs.renew_before_days)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server configuration (bind address, workers, timeouts)."""

    bind: str
    port: int
    workers: int
    worker_class: str
    timeout: int
    graceful_timeout: int
    keepalive: int


def _build_server(data: dict | None) -> ServerSettings:
    d = data or {}
    return ServerSettings(
        bind=d.get("bind", "0.0.0.0"),  # noqa: S104
        port=d.get("port", 8080),
        workers=d.get("workers", 2),
        worker_class=d.get("worker_class", "gthread"),
        timeout=d.get("timeout", 300),
        graceful_timeout=d.get("graceful_timeout", 30),
        keepalive=d.get("keepalive", 2),
    )


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiSettings:
    """Domain API routing and pagination."""

    base_path: str
    default_page_size: int
    max_page_size: int
    user_header: str
    default_actor: str


def _build_api(data: dict | None) -> ApiSettings:
    d = data or {}
    return ApiSettings(
        base_path=d.get("base_path", "/certsmith/api/v1").rstrip("/"),
        default_page_size=d.get("default_page_size", 20),
        max_page_size=d.get("max_page_size", 100),
        user_header=d.get("user_header", "X-User-ID"),
        default_actor=d.get("default_actor", "api"),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Lifecycle audit log output (JSON lines, optional rotating file)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "json"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 52428800),
            backup_count=a.get("backup_count", 5),
        ),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings."""

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float
    auto_setup: bool


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d["database"],
        user=d["user"],
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 1),
        max_connections=d.get("max_connections", 10),
        connection_timeout=d.get("connection_timeout", 30.0),
        auto_setup=d.get("auto_setup", True),
    )


# ---------------------------------------------------------------------------
# Certificates & renewal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertsSettings:
    """Artifact storage and renewal scheduling."""

    storage_dir: str
    email: str
    issuer: str
    renewal_interval_hours: float
    renew_before_days: int
    scheduler_enabled: bool
    fallback_validity_days: int
    cleanup_workers: int


def _build_certs(data: dict | None) -> CertsSettings:
    d = data or {}
    return CertsSettings(
        storage_dir=d.get("storage_dir", "/etc/nginx/ssl"),
        email=d.get("email", ""),
        issuer=d.get("issuer", "Let's Encrypt"),
        renewal_interval_hours=d.get("renewal_interval_hours", 24),
        renew_before_days=d.get("renew_before_days", 30),
        scheduler_enabled=d.get("scheduler_enabled", True),
        fallback_validity_days=d.get("fallback_validity_days", 90),
        cleanup_workers=d.get("cleanup_workers", 2),
    )


# ---------------------------------------------------------------------------
# DNS providers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProviderSettings:
    """One named DNS-provider capability.

    ``backend`` is ``"acme"`` for the built-in ACMEOW-backed provider or
    ``"ext:package.module.Class"`` for a custom :class:`DnsProvider`.
    """

    name: str
    backend: str
    directory_url: str
    email: str
    storage_path: str
    challenge_handler: str
    challenge_handler_config: dict[str, Any]
    api_key: str
    eab_kid: str | None
    eab_hmac_key: str | None
    proxy_url: str | None
    verify_ssl: bool
    timeout_seconds: int
    options: dict[str, Any] = field(default_factory=dict)


_LE_DIRECTORY = "https://acme-v02.api.letsencrypt.org/directory"


def _build_provider(d: dict, default_email: str) -> ProviderSettings:
    name = d["name"]
    return ProviderSettings(
        name=name,
        backend=d.get("backend", "acme"),
        directory_url=d.get("directory_url", _LE_DIRECTORY),
        email=d.get("email") or default_email,
        storage_path=d.get("storage_path", f"./acme_data/{name}"),
        challenge_handler=d.get("challenge_handler", "callback_dns"),
        challenge_handler_config=dict(d.get("challenge_handler_config") or {}),
        api_key=d.get("api_key", ""),
        eab_kid=d.get("eab_kid"),
        eab_hmac_key=d.get("eab_hmac_key"),
        proxy_url=d.get("proxy_url"),
        verify_ssl=d.get("verify_ssl", True),
        timeout_seconds=d.get("timeout_seconds", 300),
        options=dict(d.get("options") or {}),
    )


def _build_providers(data: list | None, default_email: str) -> tuple[ProviderSettings, ...]:
    return tuple(_build_provider(p, default_email) for p in (data or []))


# ---------------------------------------------------------------------------
# Reverse-proxy reload
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReloadSettings:
    """How dependent reverse-proxy containers are reloaded after renewal."""

    enabled: bool
    docker_binary: str
    command: tuple[str, ...]
    timeout_seconds: int


def _build_reload(data: dict | None) -> ReloadSettings:
    d = data or {}
    return ReloadSettings(
        enabled=d.get("enabled", True),
        docker_binary=d.get("docker_binary", "docker"),
        command=tuple(d.get("command", ["nginx", "-s", "reload"])),
        timeout_seconds=d.get("timeout_seconds", 30),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertsmithSettings:
    server: ServerSettings
    api: ApiSettings
    logging: LoggingSettings
    database: DatabaseSettings
    certs: CertsSettings
    providers: tuple[ProviderSettings, ...]
    reload: ReloadSettings


def build_settings(data: dict) -> CertsmithSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`CertsmithConfig` initialization after
    schema validation and environment-variable resolution.
    """
    certs = _build_certs(data.get("certs"))
    return CertsmithSettings(
        server=_build_server(data.get("server")),
        api=_build_api(data.get("api")),
        logging=_build_logging(data.get("logging")),
        database=_build_database(data.get("database")),
        certs=certs,
        providers=_build_providers(data.get("providers"), certs.email),
        reload=_build_reload(data.get("reload")),
    )
