"""Fixtures for the domain and renewal workflow tests.

The fakes themselves live in :mod:`workflow_fakes` so test modules can
import the helpers directly.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from workflow_fakes import (
    FakeAlternativeRepository,
    FakeCertificateRepository,
    FakeDomainRepository,
    FakeStore,
    make_api_settings,
    make_certs_settings,
    make_material,
    make_provider,
)

from certsmith.providers.registry import ProviderRegistry
from certsmith.services.domain import DomainService
from certsmith.services.events import EventRecorder
from certsmith.services.renewal import RenewalService


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def provider() -> MagicMock:
    return make_provider()


@pytest.fixture()
def registry(provider) -> ProviderRegistry:
    return ProviderRegistry([provider])


@pytest.fixture()
def cleaner() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def reloader() -> MagicMock:
    reloader = MagicMock()
    reloader.reload.return_value = False
    return reloader


@pytest.fixture()
def events(store) -> EventRecorder:
    return EventRecorder(store.uow)


@pytest.fixture()
def domain_service(store, registry, events, cleaner) -> DomainService:
    return DomainService(
        FakeDomainRepository(store),
        FakeAlternativeRepository(store),
        FakeCertificateRepository(store),
        registry,
        events,
        cleaner,
        make_certs_settings(),
        make_api_settings(),
        store.uow,
    )


@pytest.fixture()
def renewal_service(store, registry, events, reloader) -> RenewalService:
    return RenewalService(
        FakeDomainRepository(store),
        registry,
        events,
        reloader,
        make_certs_settings(),
        store.uow,
    )


@pytest.fixture()
def fake_domains(store) -> FakeDomainRepository:
    return FakeDomainRepository(store)


@pytest.fixture()
def material_factory():
    return make_material


@pytest.fixture()
def certs_settings_factory():
    return make_certs_settings
