"""AlternativeDomain (SAN entry) repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pypgkit import BaseRepository, Database

from certsmith.core.types import RecordStatus
from certsmith.models.domain import AlternativeDomain

if TYPE_CHECKING:
    from uuid import UUID


class AlternativeDomainRepository(BaseRepository[AlternativeDomain]):
    table_name = "alternative_domains"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> AlternativeDomain:
        return AlternativeDomain(
            id=row["id"],
            domain_id=row["domain_id"],
            alternative_domain_name=row["alternative_domain_name"],
            status=RecordStatus(row["status"]),
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            deleted_by=row.get("deleted_by"),
            deleted_at=row.get("deleted_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _entity_to_row(self, entity: AlternativeDomain) -> dict:
        return {
            "id": entity.id,
            "domain_id": entity.domain_id,
            "alternative_domain_name": entity.alternative_domain_name,
            "status": entity.status.value,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "deleted_by": entity.deleted_by,
            "deleted_at": entity.deleted_at,
        }

    def list_ids_for_domain(self, domain_id: UUID | str) -> list[str]:
        """Return ids of the live alternative names of *domain_id*."""
        db = Database.get_instance()
        rows = db.fetch_all(
            "SELECT id FROM alternative_domains "
            "WHERE domain_id = %s AND deleted_at IS NULL "
            "ORDER BY created_at",
            (domain_id,),
            as_dict=True,
        )
        return [str(r["id"]) for r in rows]
