"""Tests for the typed settings builders and their defaults."""

from __future__ import annotations

import dataclasses

import pytest

from certsmith.config.settings import build_settings


def _settings(**sections):
    data = {"database": {"database": "certsmith", "user": "certsmith"}}
    data.update(sections)
    return build_settings(data)


class TestDefaults:
    def test_server_and_api(self):
        settings = _settings()
        assert settings.server.port == 8080
        assert settings.server.worker_class == "gthread"
        assert settings.api.base_path == "/certsmith/api/v1"
        assert settings.api.max_page_size == 100
        assert settings.api.user_header == "X-User-ID"

    def test_certs_and_reload(self):
        settings = _settings()
        assert settings.certs.storage_dir == "/etc/nginx/ssl"
        assert settings.certs.renew_before_days == 30
        assert settings.certs.renewal_interval_hours == 24
        assert settings.certs.scheduler_enabled is True
        assert settings.reload.command == ("nginx", "-s", "reload")
        assert settings.reload.docker_binary == "docker"

    def test_logging(self):
        settings = _settings()
        assert settings.logging.format == "json"
        assert settings.logging.audit.enabled is True
        assert settings.logging.audit.file is None

    def test_no_providers(self):
        assert _settings().providers == ()


class TestOverrides:
    def test_base_path_trailing_slash_is_stripped(self):
        assert _settings(api={"base_path": "/api/"}).api.base_path == "/api"

    def test_provider_inherits_certs_email(self):
        settings = _settings(
            certs={"email": "ops@example.com"},
            providers=[{"name": "cloudflare"}, {"name": "route53", "email": "dns@example.com"}],
        )

        first, second = settings.providers
        assert first.email == "ops@example.com"
        assert second.email == "dns@example.com"
        assert first.storage_path == "./acme_data/cloudflare"
        assert first.challenge_handler == "callback_dns"

    def test_reload_command_is_a_tuple(self):
        settings = _settings(reload={"command": ["caddy", "reload"]})
        assert settings.reload.command == ("caddy", "reload")

    def test_missing_database_name_is_an_error(self):
        with pytest.raises(KeyError):
            build_settings({"database": {"user": "certsmith"}})


def test_settings_are_frozen():
    settings = _settings()
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.certs.renew_before_days = 1  # type: ignore[misc]
