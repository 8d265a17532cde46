"""DNS-provider capabilities: issuance, artifact storage, registry."""

from certsmith.providers.base import (
    ArtifactNotFound,
    ArtifactPaths,
    CertificateMaterial,
    DnsProvider,
    ProviderError,
    StorageError,
)
from certsmith.providers.registry import ProviderRegistry, build_registry

__all__ = [
    "ArtifactNotFound",
    "ArtifactPaths",
    "CertificateMaterial",
    "DnsProvider",
    "ProviderError",
    "ProviderRegistry",
    "StorageError",
    "build_registry",
]
