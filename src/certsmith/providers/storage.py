"""Filesystem artifact store.

Layout under ``certs.storage_dir``::

    <storage_dir>/<domain>/cert.pem     0644  leaf certificate
    <storage_dir>/<domain>/privkey.pem  0600  private key
    <storage_dir>/<domain>/chain.pem    0644  intermediates (may be empty)

The reverse proxy mounts the same directory, so file names are fixed.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from certsmith.providers.base import ArtifactNotFound, ArtifactPaths, StorageError

if TYPE_CHECKING:
    from certsmith.providers.base import CertificateMaterial

log = logging.getLogger(__name__)

CERT_FILE = "cert.pem"
KEY_FILE = "privkey.pem"
CHAIN_FILE = "chain.pem"


def _write_file(path: Path, content: str, mode: int) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(content)
    # O_CREAT honours the umask and leaves existing files alone
    os.chmod(path, mode)  # noqa: PTH101


class ArtifactStore:
    """Reads and writes per-domain certificate directories."""

    def __init__(self, storage_dir: str | Path) -> None:
        self._root = Path(storage_dir)

    @property
    def root(self) -> Path:
        return self._root

    def directory_for(self, domain: str) -> Path:
        """Return the artifact directory of *domain*.

        Raises
        ------
        StorageError
            If *domain* would escape the storage root.
        """
        name = domain.strip()
        if not name or "/" in name or "\\" in name or name in {".", ".."} or ".." in name:
            msg = f"Refusing to use {domain!r} as an artifact directory name"
            raise StorageError(msg)
        return self._root / name

    def write(self, domain: str, material: CertificateMaterial) -> ArtifactPaths:
        directory = self.directory_for(domain)
        cert_path = directory / CERT_FILE
        key_path = directory / KEY_FILE
        chain_path = directory / CHAIN_FILE
        try:
            directory.mkdir(mode=0o755, parents=True, exist_ok=True)
            _write_file(cert_path, material.certificate_pem, 0o644)
            _write_file(key_path, material.private_key_pem, 0o600)
            _write_file(chain_path, material.chain_pem or "", 0o644)
        except OSError as exc:
            msg = f"Failed to write artifacts for {domain}: {exc.strerror or exc}"
            raise StorageError(msg) from exc

        log.info("Stored certificate artifacts for %s in %s", domain, directory)
        return ArtifactPaths(
            directory=str(directory),
            cert_path=str(cert_path),
            key_path=str(key_path),
            chain_path=str(chain_path),
        )

    def delete(self, domain: str) -> None:
        directory = self.directory_for(domain)
        if not directory.is_dir():
            msg = f"No artifacts stored for {domain}"
            raise ArtifactNotFound(msg)
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            msg = f"Failed to remove artifacts for {domain}: {exc.strerror or exc}"
            raise StorageError(msg) from exc
        log.info("Removed certificate artifacts for %s", domain)
