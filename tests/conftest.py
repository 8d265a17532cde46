"""Root conftest for the certsmith test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "database": {"database": "certsmith_test", "user": "testuser"},
        "certs": {"email": "ops@example.com"},
        "providers": [
            {
                "name": "cloudflare",
                "api_key": "cf-test-key",
                "challenge_handler_config": {
                    "create_script": "/usr/local/bin/dns-create",
                    "delete_script": "/usr/local/bin/dns-delete",
                },
            },
        ],
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# ConfigKit singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the CertsmithConfig singleton before and after every test."""
    from certsmith.config.certsmith_config import CertsmithConfig

    CertsmithConfig.reset()
    yield
    CertsmithConfig.reset()
