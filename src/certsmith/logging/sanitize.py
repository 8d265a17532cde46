"""Redaction of secrets before they reach log output.

Provider configuration and certificate material pass through the
audit logger; :func:`sanitize_for_logs` strips PEM bodies and the
values of secret-looking keys (api keys, tokens, passwords, private
keys) while leaving everything else intact.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# Key names whose values are never logged, matched case-insensitively
# as substrings ("api_key", "hmac_key", "DNS_TOKEN", "db_password", ...).
_SECRET_KEY_PARTS = ("key", "token", "secret", "password", "passwd", "credential")

# Keys that contain a secret-looking part but only hold metadata.
_SAFE_KEYS = frozenset({"key_path", "eab_kid"})

_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)


def is_secret_key(name: str) -> bool:
    lowered = name.lower()
    if lowered in _SAFE_KEYS:
        return False
    return any(part in lowered for part in _SECRET_KEY_PARTS)


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``.

    BEGIN/END markers are kept so the object type stays visible.
    """

    def _redact(m: re.Match) -> str:
        return f"{m.group(1)}\n{REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively redact secrets in *data*."""
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if isinstance(key, str) and is_secret_key(key) and value:
                result[key] = REDACTED
            else:
                result[key] = sanitize_for_logs(value)
        return result

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str) and "-----BEGIN " in data:
        return sanitize_pem(data)

    return data
