"""DNS-01 challenge handler factories.

Build ACMEOW challenge handlers from a provider's
``challenge_handler_config``.

Built-in factories:

- ``callback_dns``: wrap shell scripts that create and delete the
  ``_acme-challenge`` TXT record at the DNS provider

Custom factories can be loaded via the ``ext:`` prefix
(e.g. ``ext:mypackage.handlers.MyFactory``).
"""

from __future__ import annotations

import abc
import importlib
import logging
import os
import subprocess
from typing import TYPE_CHECKING, Any

from certsmith.providers.base import ProviderError

if TYPE_CHECKING:
    from certsmith.config.settings import ProviderSettings

log = logging.getLogger(__name__)


class ChallengeHandlerFactory(abc.ABC):
    """Create an ACMEOW challenge handler for one DNS provider."""

    @abc.abstractmethod
    def create(self, config: dict[str, Any], provider: ProviderSettings) -> Any:  # noqa: ANN401
        """Build and return a challenge handler.

        Parameters
        ----------
        config:
            The provider's ``challenge_handler_config`` dict.
        provider:
            The full provider entry (name, api key, ...).
        """


class CallbackDnsFactory(ChallengeHandlerFactory):
    """Factory for ACMEOW's ``CallbackDnsHandler``.

    Config keys:

    - ``create_script``: called as ``script <domain> <record_name> <record_value>``
    - ``delete_script``: called as ``script <domain> <record_name>``
    - ``propagation_delay``: seconds to wait after creating the record (default 30)
    - ``script_timeout``: per-invocation timeout in seconds (default 60)

    Scripts receive ``CERTSMITH_DNS_PROVIDER`` and ``CERTSMITH_DNS_API_KEY``
    in their environment so one script can serve several providers.
    """

    def create(self, config: dict[str, Any], provider: ProviderSettings) -> Any:  # noqa: ANN401
        create_script = config.get("create_script")
        delete_script = config.get("delete_script")
        if not create_script:
            msg = "callback_dns handler requires 'create_script' in config"
            raise ProviderError(msg)
        if not delete_script:
            msg = "callback_dns handler requires 'delete_script' in config"
            raise ProviderError(msg)

        from acmeow.handlers import CallbackDnsHandler  # noqa: PLC0415

        propagation_delay = config.get("propagation_delay", 30)
        script_timeout = config.get("script_timeout", 60)
        env = {
            **os.environ,
            "CERTSMITH_DNS_PROVIDER": provider.name,
            "CERTSMITH_DNS_API_KEY": provider.api_key,
        }

        def _run(argv: list[str]) -> None:
            try:
                subprocess.run(  # noqa: S603
                    argv,
                    check=True,
                    timeout=script_timeout,
                    capture_output=True,
                    text=True,
                    env=env,
                )
            except subprocess.CalledProcessError as exc:
                log.error(
                    "DNS script %s exited with %d: %s",
                    argv[0],
                    exc.returncode,
                    (exc.stderr or "").strip()[:500],
                )
                raise

        def create_record(domain: str, record_name: str, record_value: str) -> None:
            log.info(
                "DNS create: %s %s via %s (%s)",
                record_name,
                domain,
                create_script,
                provider.name,
            )
            _run([create_script, domain, record_name, record_value])

        def delete_record(domain: str, record_name: str) -> None:
            log.info(
                "DNS delete: %s %s via %s (%s)",
                record_name,
                domain,
                delete_script,
                provider.name,
            )
            _run([delete_script, domain, record_name])

        return CallbackDnsHandler(
            create_record=create_record,
            delete_record=delete_record,
            propagation_delay=propagation_delay,
        )


_BUILTIN_FACTORIES: dict[str, ChallengeHandlerFactory] = {
    "callback_dns": CallbackDnsFactory(),
}


def load_challenge_handler(provider: ProviderSettings) -> Any:  # noqa: ANN401
    """Create the challenge handler configured for *provider*.

    Raises
    ------
    ProviderError
        If the handler cannot be loaded or created.
    """
    handler_name = provider.challenge_handler
    config = provider.challenge_handler_config

    if handler_name in _BUILTIN_FACTORIES:
        return _BUILTIN_FACTORIES[handler_name].create(config, provider)
    if handler_name.startswith("ext:"):
        return _load_external_factory(handler_name[4:]).create(config, provider)

    msg = (
        f"Unknown challenge handler '{handler_name}'; "
        f"built-in options: {sorted(_BUILTIN_FACTORIES)}. "
        "Use 'ext:mypackage.module.FactoryClass' for custom handlers."
    )
    raise ProviderError(msg)


def _load_external_factory(fqn: str) -> ChallengeHandlerFactory:
    module_path, _, cls_name = fqn.rpartition(".")
    if not module_path:
        msg = (
            f"Invalid external handler factory '{fqn}': must be "
            "fully qualified (e.g. 'mypackage.module.FactoryClass')"
        )
        raise ProviderError(msg)
    try:
        module = importlib.import_module(module_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load external handler factory '{fqn}': {exc}"
        raise ProviderError(msg) from exc

    if not (isinstance(cls, type) and issubclass(cls, ChallengeHandlerFactory)):
        msg = f"External handler factory '{fqn}' must be a subclass of ChallengeHandlerFactory"
        raise ProviderError(msg)
    return cls()
