"""Abstract base class for DNS-provider capabilities.

A :class:`DnsProvider` issues certificates for a primary domain plus
its alternative names (proving control via DNS-01) and stores the
resulting artifacts on disk.  All providers (built-in and custom) must
inherit from it and implement :meth:`issue`.

Artifact persistence and deletion have a default implementation backed
by :class:`~certsmith.providers.storage.ArtifactStore`; providers that
keep their material elsewhere may override them.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

if TYPE_CHECKING:
    from collections.abc import Iterable

    from certsmith.config.settings import CertsSettings, ProviderSettings

log = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised by providers on issuance, storage or deletion failure.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure looks transient.  Informational only: no
        workflow retries automatically.
    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(detail)


class StorageError(ProviderError):
    """Artifacts could not be written to or removed from storage."""


class ArtifactNotFound(ProviderError):  # noqa: N818
    """No stored artifacts exist for the requested domain."""


@dataclass(frozen=True)
class CertificateMaterial:
    """Everything a successful issuance produced.

    Attributes
    ----------
    certificate_pem:
        PEM-encoded leaf certificate.
    private_key_pem:
        PEM-encoded private key matching the leaf.
    chain_pem:
        PEM-encoded intermediates, empty when the CA returned none.
    valid_from / valid_to:
        Validity window of the leaf (UTC).
    names:
        The de-duplicated names requested, primary first.
    """

    certificate_pem: str
    private_key_pem: str
    chain_pem: str
    valid_from: datetime
    valid_to: datetime
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ArtifactPaths:
    directory: str
    cert_path: str
    key_path: str
    chain_path: str


def unique_names(primary: str, alternatives: Iterable[str]) -> list[str]:
    """Return *primary* followed by *alternatives*, trimmed and de-duplicated.

    Blank entries are dropped and first occurrence wins, so the primary
    name always comes first when it is non-blank.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in (primary, *alternatives):
        name = (raw or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return result


def split_certificate_chain(
    fullchain_pem: str,
    private_key_pem: str,
    names: Iterable[str],
    *,
    fallback_validity_days: int = 90,
    now: datetime | None = None,
) -> CertificateMaterial:
    """Split a PEM bundle into leaf and chain and read the validity window.

    When the bundle cannot be parsed the whole text is kept as the leaf,
    the chain is left empty, and the validity window falls back to
    ``now .. now + fallback_validity_days``.
    """
    try:
        certs = x509.load_pem_x509_certificates(fullchain_pem.encode())
    except ValueError:
        log.warning("Issued certificate could not be parsed; using fallback validity window")
        start = now or datetime.now(UTC)
        return CertificateMaterial(
            certificate_pem=fullchain_pem,
            private_key_pem=private_key_pem,
            chain_pem="",
            valid_from=start,
            valid_to=start + timedelta(days=fallback_validity_days),
            names=tuple(names),
        )

    leaf, intermediates = certs[0], certs[1:]
    return CertificateMaterial(
        certificate_pem=leaf.public_bytes(Encoding.PEM).decode(),
        private_key_pem=private_key_pem,
        chain_pem="".join(c.public_bytes(Encoding.PEM).decode() for c in intermediates),
        valid_from=leaf.not_valid_before_utc,
        valid_to=leaf.not_valid_after_utc,
        names=tuple(names),
    )


class DnsProvider(abc.ABC):
    """Base class for all DNS-provider implementations.

    Parameters
    ----------
    settings:
        This provider's entry from the ``providers`` config list.
    certs:
        The ``certs`` config section (storage directory, fallbacks).
    """

    def __init__(self, settings: ProviderSettings, certs: CertsSettings) -> None:
        from certsmith.providers.storage import ArtifactStore  # noqa: PLC0415

        self._settings = settings
        self._certs = certs
        self._store = ArtifactStore(certs.storage_dir)

    @property
    def name(self) -> str:
        return self._settings.name

    @abc.abstractmethod
    def issue(self, primary: str, alternatives: list[str]) -> CertificateMaterial:
        """Obtain a certificate covering *primary* and *alternatives*.

        Raises
        ------
        ProviderError
            On any issuance failure.
        """

    def persist_artifacts(self, primary: str, material: CertificateMaterial) -> ArtifactPaths:
        """Write *material* for *primary* and return where it landed.

        Raises
        ------
        StorageError
            If any file cannot be written.
        """
        return self._store.write(primary, material)

    def delete_artifacts(self, primary: str) -> None:
        """Remove every stored artifact of *primary*.

        Raises
        ------
        ArtifactNotFound
            If nothing is stored for *primary*.
        StorageError
            If removal fails.
        """
        self._store.delete(primary)

    def artifact_dir(self, primary: str) -> str:
        return str(self._store.directory_for(primary))

    def startup_check(self) -> None:
        """Optional startup initialisation / health check.

        Called once while the registry is built.  Default is a no-op.

        Raises
        ------
        ProviderError
            If the provider is misconfigured or unreachable.
        """
