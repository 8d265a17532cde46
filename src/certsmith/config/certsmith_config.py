"""certsmith configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    CertsmithConfig(config_file="/etc/certsmith/config.yaml")

    # 2. Any module retrieves it afterwards
    from certsmith.config import get_config
    cfg = get_config()
    cfg.settings.certs.storage_dir  # typed access
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from certsmith.config.settings import CertsmithSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

# Provider names that select "the first configured provider".
NO_PREFERENCE_NAMES = frozenset({"no", "default", "no-preference"})

_BUILTIN_BACKENDS = frozenset({"acme"})
_BUILTIN_HANDLERS = frozenset({"callback_dns"})

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: CertsmithConfig | None = None


def get_config() -> CertsmithConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`CertsmithConfig` has not been
    created yet.
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "CertsmithConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with the env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name, fallback = match.group(1), match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in place and resolve ``${VAR}`` / ``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        items = list(data.items())
    elif isinstance(data, list):
        items = list(enumerate(data))
    else:
        return
    for key, value in items:
        if isinstance(key, int):
            child_path = f"{path}[{key}]"
        else:
            child_path = f"{path}.{key}" if path else key
        if isinstance(value, str):
            data[key] = _resolve_value(value, child_path)
        elif isinstance(value, (dict, list)):
            _resolve_env_vars(value, child_path)


def api_key_env_var(provider_name: str) -> str:
    """Environment variable holding the API key of *provider_name*.

    ``cloud-dns`` maps to ``API_KEY_CLOUD_DNS``.
    """
    return "API_KEY_" + re.sub(r"[^A-Za-z0-9]", "_", provider_name).upper()


def _fill_provider_api_keys(data: dict) -> None:
    """Default each provider's ``api_key`` from ``API_KEY_<NAME>``."""
    for provider in data.get("providers") or []:
        if not isinstance(provider, dict) or provider.get("api_key"):
            continue
        name = provider.get("name")
        if not isinstance(name, str):
            continue
        env_value = os.environ.get(api_key_env_var(name))
        if env_value:
            provider["api_key"] = env_value


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class CertsmithConfig(ConfigKit):
    """Central configuration for certsmith.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is bundled
    at ``config/schema.json``; users supply only ``config_file``.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )
        self._settings: CertsmithSettings = build_settings(self.data)
        _instance = self

    def _load(self) -> None:
        """Load the file, then resolve env references before schema validation."""
        super()._load()
        _resolve_env_vars(self._data)
        _fill_provider_api_keys(self._data)

    @property
    def settings(self) -> CertsmithSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    def additional_checks(self) -> None:  # noqa: C901
        """Cross-field validation, run by ConfigKit after the schema passes."""
        errors: list[str] = []
        warnings: list[str] = []

        certs = self.data.get("certs") or {}
        providers = self.data.get("providers") or []

        # -- certs --
        if certs.get("renew_before_days", 30) <= 0:
            errors.append("certs.renew_before_days must be greater than 0")
        if certs.get("renewal_interval_hours", 24) <= 0:
            errors.append("certs.renewal_interval_hours must be greater than 0")

        # -- providers --
        if not providers:
            errors.append("providers must contain at least one DNS provider")
        seen: set[str] = set()
        for idx, provider in enumerate(providers):
            name = provider.get("name", "")
            where = f"providers[{idx}] ({name!r})"
            if name in seen:
                errors.append(f"{where}: duplicate provider name")
            seen.add(name)
            if name.lower() in NO_PREFERENCE_NAMES:
                errors.append(
                    f"{where}: name is reserved for 'first configured provider' selection",
                )

            backend = provider.get("backend", "acme")
            if backend not in _BUILTIN_BACKENDS:
                if not backend.startswith("ext:") or not _CLASS_PATH_RE.match(backend[4:]):
                    errors.append(
                        f"{where}: backend must be 'acme' or 'ext:package.module.Class' "
                        f"(got {backend!r})",
                    )
                continue

            handler = provider.get("challenge_handler", "callback_dns")
            if handler not in _BUILTIN_HANDLERS and (
                not handler.startswith("ext:") or not _CLASS_PATH_RE.match(handler[4:])
            ):
                errors.append(
                    f"{where}: challenge_handler must be 'callback_dns' or "
                    f"'ext:package.module.Factory' (got {handler!r})",
                )
            if handler == "callback_dns":
                hcfg = provider.get("challenge_handler_config") or {}
                for key in ("create_script", "delete_script"):
                    if not hcfg.get(key):
                        errors.append(f"{where}: challenge_handler_config.{key} is required")
            if not (provider.get("email") or certs.get("email")):
                errors.append(f"{where}: an account email is required (provider or certs.email)")
            if not provider.get("api_key"):
                warnings.append(
                    f"{where}: no api_key configured and {api_key_env_var(name)} is not set",
                )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        source = self.data.get("_source", "?")
        return f"<CertsmithConfig config_file={source}>"
