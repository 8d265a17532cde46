"""Certificate repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pypgkit import BaseRepository, Database

from certsmith.core.types import RecordStatus
from certsmith.models.certificate import Certificate

if TYPE_CHECKING:
    from uuid import UUID


class CertificateRepository(BaseRepository[Certificate]):
    table_name = "certificates"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> Certificate:
        return Certificate(
            id=row["id"],
            domain_id=row["domain_id"],
            issuer=row["issuer"],
            cert_path=row["cert_path"],
            key_path=row["key_path"],
            chain_path=row["chain_path"],
            valid_from=row["valid_from"],
            valid_to=row["valid_to"],
            status=RecordStatus(row["status"]),
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            deleted_by=row.get("deleted_by"),
            deleted_at=row.get("deleted_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _entity_to_row(self, entity: Certificate) -> dict:
        return {
            "id": entity.id,
            "domain_id": entity.domain_id,
            "issuer": entity.issuer,
            "cert_path": entity.cert_path,
            "key_path": entity.key_path,
            "chain_path": entity.chain_path,
            "valid_from": entity.valid_from,
            "valid_to": entity.valid_to,
            "status": entity.status.value,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "deleted_by": entity.deleted_by,
            "deleted_at": entity.deleted_at,
        }

    def find_for_domain(self, domain_id: UUID | str) -> Certificate | None:
        """Return the live certificate of *domain_id*, if any."""
        db = Database.get_instance()
        row = db.fetch_one(
            "SELECT * FROM certificates "
            "WHERE domain_id = %s AND deleted_at IS NULL "
            "ORDER BY created_at DESC LIMIT 1",
            (domain_id,),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None
