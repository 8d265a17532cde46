"""Certificate entity."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from certsmith.core.types import RecordStatus

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class Certificate:
    id: UUID
    domain_id: UUID
    issuer: str
    cert_path: str
    key_path: str
    chain_path: str
    valid_from: datetime
    valid_to: datetime
    status: RecordStatus
    created_by: str = ""
    updated_by: str = ""
    deleted_by: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime = _EPOCH
    updated_at: datetime = _EPOCH
