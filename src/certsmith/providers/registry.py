"""DNS-provider registry.

Built once at startup from the ``providers`` config list into an
immutable ``name -> DnsProvider`` mapping.  Supports the built-in
``acme`` backend and custom backends via the ``ext:`` prefix.

Usage::

    from certsmith.providers.registry import build_registry

    registry = build_registry(settings.providers, settings.certs)
    provider = registry.resolve("cloudflare")
    provider = registry.resolve("no")   # first configured provider
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from certsmith.config.certsmith_config import NO_PREFERENCE_NAMES
from certsmith.core.errors import ConfigurationError
from certsmith.providers.base import DnsProvider, ProviderError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from certsmith.config.settings import CertsSettings, ProviderSettings

log = logging.getLogger(__name__)

# Maps config string -> (module_path, class_name)
_BUILTIN_BACKENDS: dict[str, tuple[str, str]] = {
    "acme": ("certsmith.providers.acme", "AcmeDnsProvider"),
}


class ProviderRegistry(Mapping[str, DnsProvider]):
    """Immutable, ordered mapping of provider name to :class:`DnsProvider`.

    The first provider added is the target of the no-preference names
    (``no``, ``default``, ``no-preference``).
    """

    def __init__(self, providers: Iterable[DnsProvider]) -> None:
        ordered: dict[str, DnsProvider] = {}
        for provider in providers:
            if provider.name in ordered:
                msg = f"duplicate provider name {provider.name!r}"
                raise ConfigurationError("build_registry", "", msg)
            ordered[provider.name] = provider
        self._providers: Mapping[str, DnsProvider] = MappingProxyType(ordered)

    def __getitem__(self, name: str) -> DnsProvider:
        return self._providers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def first(self) -> DnsProvider:
        if not self._providers:
            msg = "no DNS providers are registered"
            raise ConfigurationError("resolve_provider", "", msg)
        return next(iter(self._providers.values()))

    def resolve(self, name: str) -> DnsProvider:
        """Return the provider registered as *name* (exact match).

        Raises
        ------
        ConfigurationError
            If *name* is not registered and is not a no-preference name.
        """
        if name in NO_PREFERENCE_NAMES:
            return self.first
        provider = self._providers.get(name)
        if provider is None:
            msg = f"unknown DNS provider {name!r}"
            raise ConfigurationError("resolve_provider", "", msg)
        return provider


def load_provider(settings: ProviderSettings, certs: CertsSettings) -> DnsProvider:
    """Instantiate the provider described by *settings* (without starting it).

    Raises
    ------
    ProviderError
        If the backend cannot be loaded.
    """
    backend = settings.backend
    if backend in _BUILTIN_BACKENDS:
        mod_path, cls_name = _BUILTIN_BACKENDS[backend]
        label = backend
    elif backend.startswith("ext:"):
        mod_path, _, cls_name = backend[4:].rpartition(".")
        label = backend
        if not mod_path:
            msg = (
                f"Invalid external provider backend '{backend}': must be fully "
                "qualified (e.g. 'ext:mypackage.module.ClassName')"
            )
            raise ProviderError(msg)
    else:
        msg = (
            f"Unknown provider backend '{backend}'; "
            f"built-in options: {sorted(_BUILTIN_BACKENDS)}. "
            "Use 'ext:mypackage.module.ClassName' for custom backends."
        )
        raise ProviderError(msg)

    try:
        module = importlib.import_module(mod_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load provider backend '{label}': {exc}"
        raise ProviderError(msg) from exc

    if not (isinstance(cls, type) and issubclass(cls, DnsProvider)):
        msg = f"Provider backend '{label}' is not a subclass of DnsProvider"
        raise ProviderError(msg)
    if getattr(cls.issue, "__isabstractmethod__", False):
        msg = f"Provider backend '{label}' does not implement 'issue()'"
        raise ProviderError(msg)

    return cls(settings, certs)


def build_registry(
    providers: Iterable[ProviderSettings],
    certs: CertsSettings,
) -> ProviderRegistry:
    """Load and start every configured provider.

    A provider that fails to load or whose ``startup_check`` fails is
    logged and left out.  Ending up with no usable provider at all is
    fatal.

    Raises
    ------
    ConfigurationError
        If no provider could be initialised.
    """
    loaded: list[DnsProvider] = []
    for entry in providers:
        try:
            provider = load_provider(entry, certs)
            provider.startup_check()
        except ProviderError as exc:
            log.error("DNS provider %s unavailable, skipping: %s", entry.name, exc.detail)
            continue
        log.info("Loaded DNS provider %s (backend %s)", entry.name, entry.backend)
        loaded.append(provider)

    if not loaded:
        msg = "no DNS provider could be initialised"
        raise ConfigurationError("build_registry", "", msg)
    return ProviderRegistry(loaded)
