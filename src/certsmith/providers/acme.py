"""ACME DNS-01 provider backed by ACMEOW.

Generates a fresh key and CSR per issuance, drives the ACME
order / DNS-01 challenge / finalize / download flow through an
ACMEOW :class:`AcmeClient`, and returns the resulting material.  The
ACMEOW client is stateful (one current order), so every issuance is
serialised with a lock.

Requires ACMEOW >= 1.1.0 for external CSR support via
``finalize_order(csr=<bytes>)``.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from certsmith.providers.base import (
    CertificateMaterial,
    DnsProvider,
    ProviderError,
    split_certificate_chain,
    unique_names,
)
from certsmith.providers.handlers import load_challenge_handler

if TYPE_CHECKING:
    from certsmith.config.settings import CertsSettings, ProviderSettings

log = logging.getLogger(__name__)

_RSA_KEY_SIZE = 2048
_CHALLENGE_TYPE = "dns-01"


def generate_key_and_csr(names: list[str]) -> tuple[str, bytes]:
    """Return ``(private_key_pem, csr_der)`` for *names* (primary first)."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=_RSA_KEY_SIZE)
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, names[0])]))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in names]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return key_pem, csr.public_bytes(serialization.Encoding.DER)


class AcmeDnsProvider(DnsProvider):
    """Issue certificates from an ACME CA using DNS-01 challenges."""

    def __init__(self, settings: ProviderSettings, certs: CertsSettings) -> None:
        super().__init__(settings, certs)
        self._client: Any = None
        self._handler: Any = None
        self._lock = threading.Lock()

    def startup_check(self) -> None:
        """Load the challenge handler, create the ACMEOW client and register.

        Raises
        ------
        ProviderError
            If configuration is incomplete, ACMEOW is missing, or account
            registration fails.
        """
        if not self._settings.directory_url:
            msg = f"provider {self.name}: directory_url is required"
            raise ProviderError(msg)
        if not self._settings.email:
            msg = f"provider {self.name}: an account email is required"
            raise ProviderError(msg)

        storage = Path(self._settings.storage_path)
        try:
            storage.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Failed to create ACME storage directory '{storage}': {exc}"
            raise ProviderError(msg) from exc

        self._handler = load_challenge_handler(self._settings)

        try:
            from acmeow import AcmeClient  # noqa: PLC0415
        except ImportError as exc:
            msg = "ACMEOW is not installed. Install with: pip install acmeow"
            raise ProviderError(msg) from exc

        try:
            self._init_client(AcmeClient, storage)
        except Exception as exc:  # noqa: BLE001
            msg = f"provider {self.name}: failed to initialise ACME client: {exc}"
            raise ProviderError(msg, retryable=True) from exc

    def _init_client(self, acme_client_cls: type, storage: Path) -> None:
        client_kwargs: dict[str, Any] = {
            "server_url": self._settings.directory_url,
            "email": self._settings.email,
            "storage_path": str(storage),
        }
        if self._settings.proxy_url:
            client_kwargs["proxy_url"] = self._settings.proxy_url
        if not self._settings.verify_ssl:
            client_kwargs["verify_ssl"] = False
        self._client = acme_client_cls(**client_kwargs)

        if self._settings.eab_kid and self._settings.eab_hmac_key:
            self._client.set_external_account_binding(
                self._settings.eab_kid,
                self._settings.eab_hmac_key,
            )
        self._client.create_account()
        log.info("Provider %s: ACME account ready at %s", self.name, self._settings.directory_url)

    def issue(self, primary: str, alternatives: list[str]) -> CertificateMaterial:
        if self._client is None:
            msg = f"provider {self.name}: ACME client not initialised; call startup_check() first"
            raise ProviderError(msg)

        names = unique_names(primary, alternatives)
        if not names:
            msg = "no domain names to issue a certificate for"
            raise ProviderError(msg)

        key_pem, csr_der = generate_key_and_csr(names)

        with self._lock:
            try:
                fullchain_pem = self._execute_order(names, csr_der)
            except Exception as exc:  # noqa: BLE001
                msg = f"ACME issuance failed ({type(exc).__name__}): {exc}"
                raise ProviderError(msg, retryable=_is_retryable(exc)) from exc

        return split_certificate_chain(
            fullchain_pem,
            key_pem,
            names,
            fallback_validity_days=self._certs.fallback_validity_days,
        )

    def _execute_order(self, names: list[str], csr_der: bytes) -> str:
        from acmeow import Identifier  # noqa: PLC0415

        log.info("Provider %s: creating order for %s", self.name, ", ".join(names))
        self._client.create_order([Identifier.dns(name) for name in names])

        log.info("Provider %s: completing %s challenges", self.name, _CHALLENGE_TYPE)
        self._client.complete_challenges(
            self._handler,
            challenge_type=_CHALLENGE_TYPE,
            dns_timeout=self._settings.timeout_seconds,
        )

        self._client.finalize_order(csr=csr_der)
        cert_pem, _ = self._client.get_certificate()
        log.info("Provider %s: certificate issued for %s", self.name, names[0])
        return cert_pem


def _is_retryable(exc: Exception) -> bool:
    """Guess whether an ACME error is transient."""
    exc_name = type(exc).__name__.lower()
    msg = str(exc).lower()
    patterns = ("timeout", "connection", "network", "503", "429", "ratelimit")
    return any(p in exc_name or p in msg for p in patterns)
