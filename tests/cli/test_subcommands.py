"""Tests for the db, providers, renew and serve subcommands."""

from __future__ import annotations

import argparse
from unittest.mock import MagicMock, patch

import pytest

from certsmith.cli.commands.db import run_db
from certsmith.cli.commands.providers import run_providers
from certsmith.cli.commands.renew import run_renew
from certsmith.cli.commands.serve import run_serve
from certsmith.config.settings import build_settings
from certsmith.core.errors import ConfigurationError, IssuanceFailed, ReloadFailed
from certsmith.providers.base import ProviderError
from certsmith.services.scheduler import SweepResult


def _args(**kwargs):
    kwargs.setdefault("debug", False)
    return argparse.Namespace(**kwargs)


@pytest.fixture
def config():
    config = MagicMock()
    config.settings = build_settings(
        {
            "database": {"database": "certsmith", "user": "certsmith"},
            "certs": {"email": "ops@example.com"},
            "providers": [
                {"name": "cloudflare"},
                {"name": "route53", "backend": "acme"},
            ],
        }
    )
    return config


# ---------------------------------------------------------------------------
# db
# ---------------------------------------------------------------------------


class TestDbStatus:
    def test_all_tables_present(self, config, capsys):
        status = {"connected": True, "tables": {"domains": 3, "certificates": 2}}
        with (
            patch("certsmith.db.init_database"),
            patch("certsmith.db.init.database_status", return_value=status),
        ):
            run_db(config, _args(db_command="status"))

        out = capsys.readouterr().out
        assert "database: connected" in out
        assert "domains" in out
        assert "3 rows" in out

    def test_missing_table_exits_1(self, config, capsys):
        status = {"connected": True, "tables": {"domains": 3, "events": None}}
        with (
            patch("certsmith.db.init_database"),
            patch("certsmith.db.init.database_status", return_value=status),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_db(config, _args(db_command="status"))

        assert exc_info.value.code == 1
        assert "missing" in capsys.readouterr().out

    def test_unreachable_exits_1(self, config, capsys):
        with (
            patch("certsmith.db.init_database", side_effect=RuntimeError("refused")),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_db(config, _args(db_command="status"))

        assert exc_info.value.code == 1
        assert "unreachable (refused)" in capsys.readouterr().err

    def test_no_subcommand_prints_usage(self, config, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_db(config, _args(db_command=None))
        assert exc_info.value.code == 2
        assert "usage" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# providers
# ---------------------------------------------------------------------------


class TestProviders:
    def test_all_ok(self, config, capsys):
        with patch("certsmith.providers.registry.load_provider") as load:
            run_providers(config, _args())

        assert load.call_count == 2
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "cloudflare (default): ok (backend acme)",
            "route53: ok (backend acme)",
        ]

    def test_failed_provider_exits_1(self, config, capsys):
        broken = MagicMock()
        broken.startup_check.side_effect = ProviderError("account registration refused")
        with (
            patch(
                "certsmith.providers.registry.load_provider",
                side_effect=[MagicMock(), broken],
            ),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_providers(config, _args())

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "route53: FAILED (account registration refused)" in out


# ---------------------------------------------------------------------------
# renew
# ---------------------------------------------------------------------------


@pytest.fixture
def container():
    container = MagicMock()
    with patch("certsmith.cli.commands.renew._build_container", return_value=container):
        yield container


class TestRenew:
    def test_sweep_ok(self, config, container, capsys):
        container.scheduler.run_once.return_value = SweepResult(
            checked=["a.example.com", "b.example.com"],
            renewed=["a.example.com"],
            skipped=["b.example.com"],
        )

        run_renew(config, _args(domain=None, force=False))

        out = capsys.readouterr().out
        assert "a.example.com: renewed" in out
        assert "b.example.com: not due" in out
        assert "checked 2, renewed 1, failed 0" in out
        container.close.assert_called_once()

    def test_sweep_with_failures_exits_1(self, config, container, capsys):
        container.scheduler.run_once.return_value = SweepResult(
            checked=["a.example.com", "b.example.com"],
            failed=["a.example.com"],
            reload_failed=["b.example.com"],
        )

        with pytest.raises(SystemExit) as exc_info:
            run_renew(config, _args(domain=None, force=False))

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "b.example.com: reload failed" in out
        assert "failed 2" in out
        container.close.assert_called_once()

    def test_single_domain(self, config, container, capsys):
        container.renewal_service.renew_by_name.return_value = True

        run_renew(config, _args(domain="example.com", force=True))

        container.renewal_service.renew_by_name.assert_called_once_with(
            "example.com", actor="cli", force=True
        )
        assert capsys.readouterr().out == "example.com: renewed\n"

    def test_single_domain_not_due(self, config, container, capsys):
        container.renewal_service.renew_by_name.return_value = False

        run_renew(config, _args(domain="example.com", force=False))

        assert capsys.readouterr().out == "example.com: not due\n"

    def test_single_domain_failure(self, config, container, capsys):
        container.renewal_service.renew_by_name.side_effect = IssuanceFailed(
            "issue", "example.com", "rate limited"
        )

        with pytest.raises(SystemExit) as exc_info:
            run_renew(config, _args(domain="example.com", force=False))

        assert exc_info.value.code == 1
        assert "example.com: failed" in capsys.readouterr().out
        container.close.assert_called_once()

    def test_single_domain_reload_failure(self, config, container, capsys):
        container.renewal_service.renew_by_name.side_effect = ReloadFailed(
            "reload", "example.com", "docker exec exited 1"
        )

        with pytest.raises(SystemExit):
            run_renew(config, _args(domain="example.com", force=False))

        assert "renewed, but docker exec exited 1" in capsys.readouterr().out

    def test_container_failure_exits_1(self, config, capsys):
        with (
            patch(
                "certsmith.cli.commands.renew._build_container",
                side_effect=RuntimeError("pool timeout"),
            ),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_renew(config, _args(domain=None, force=False))

        assert exc_info.value.code == 1
        assert "pool timeout" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServe:
    def test_gunicorn(self, config):
        app = MagicMock()
        with (
            patch("certsmith.db.init_database") as init_db,
            patch("certsmith.app.create_app", return_value=app) as create_app,
            patch("certsmith.server.gunicorn_app.run_gunicorn") as run_gunicorn,
        ):
            run_serve(config, _args(dev=False))

        create_app.assert_called_once_with(config=config, database=init_db.return_value)
        run_gunicorn.assert_called_once_with(app, config.settings.server)

    def test_dev_server(self, config):
        app = MagicMock()
        with (
            patch("certsmith.db.init_database"),
            patch("certsmith.app.create_app", return_value=app),
        ):
            run_serve(config, _args(dev=True))

        app.extensions["shutdown_coordinator"].register_signals.assert_called_once()
        app.run.assert_called_once()
        assert app.run.call_args.kwargs["port"] == 8080

    def test_database_failure_exits_1(self, config, capsys):
        with (
            patch("certsmith.db.init_database", side_effect=RuntimeError("refused")),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_serve(config, _args(dev=False))

        assert exc_info.value.code == 1
        assert "database initialisation failed" in capsys.readouterr().err

    def test_provider_failure_exits_1(self, config, capsys):
        error = ConfigurationError("build_registry", "", "provider 'cloudflare' failed")
        with (
            patch("certsmith.db.init_database"),
            patch("certsmith.app.create_app", side_effect=error),
            pytest.raises(SystemExit) as exc_info,
        ):
            run_serve(config, _args(dev=False))

        assert exc_info.value.code == 1
        assert "provider 'cloudflare' failed" in capsys.readouterr().err
