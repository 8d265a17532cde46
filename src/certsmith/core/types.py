"""Enumerated types for the certsmith persistence layer.

All enums inherit from ``StrEnum`` so their ``.value`` is a plain
string that psycopg serialises as TEXT and JSON round-trips naturally.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------


class DomainStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    UPDATE_FAILED = "update_failed"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Alternative domain / certificate rows
# ---------------------------------------------------------------------------


class RecordStatus(StrEnum):
    ACTIVE = "active"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventType(StrEnum):
    CREATED = "created"
    RENEWED = "renewed"
    FAILED = "failed"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class VerificationMethod(StrEnum):
    DNS_01 = "dns-01"


# Actor recorded on rows and events written by the renewal scheduler.
SYSTEM_RENEWAL_ACTOR = "system-renewal"
