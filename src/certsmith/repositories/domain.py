"""Domain repository and listing queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

from pypgkit import BaseRepository, Database

from certsmith.core.types import DomainStatus
from certsmith.models.domain import Domain, DomainListing

if TYPE_CHECKING:
    from collections.abc import Sequence

_LISTING_SELECT = (
    "SELECT d.*, "
    "  c.id AS certificate_id, "
    "  c.valid_from AS cert_valid_from, "
    "  c.valid_to AS cert_valid_to, "
    "  ARRAY("
    "    SELECT a.alternative_domain_name FROM alternative_domains a "
    "    WHERE a.domain_id = d.id AND a.deleted_at IS NULL "
    "    ORDER BY a.created_at"
    "  ) AS alternative_domains "
    "FROM domains d "
    "LEFT JOIN certificates c ON c.domain_id = d.id AND c.deleted_at IS NULL "
)


@dataclass(frozen=True)
class DomainFilters:
    """Filters for :meth:`DomainRepository.list_domains`.

    Deleted domains are only returned when ``status`` is ``"deleted"``.
    A ``limit`` of ``None`` returns every matching row.
    """

    name_contains: str | None = None
    status: str | None = None
    user_id: str | None = None
    limit: int | None = None
    offset: int = 0

    def where_clause(self) -> tuple[str, list]:
        conditions: list[str] = []
        params: list = []
        if self.name_contains:
            conditions.append("d.domain_name ILIKE %s")
            params.append(f"%{_escape_like(self.name_contains)}%")
        if self.status:
            conditions.append("d.status = %s")
            params.append(self.status)
        if self.status != DomainStatus.DELETED:
            conditions.append("d.deleted_at IS NULL")
        if self.user_id:
            conditions.append("d.user_id = %s")
            params.append(self.user_id)
        where = " AND ".join(conditions) if conditions else "TRUE"
        return where, params


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _as_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


class DomainRepository(BaseRepository[Domain]):
    table_name = "domains"
    primary_key = "id"

    def _row_to_entity(self, row: dict) -> Domain:
        return Domain(
            id=row["id"],
            domain_name=row["domain_name"],
            user_id=row["user_id"],
            dns_provider=row["dns_provider"],
            verification_method=row["verification_method"],
            auto_renew=row["auto_renew"],
            status=DomainStatus(row["status"]),
            nginx_container_name=row["nginx_container_name"],
            created_by=row["created_by"],
            updated_by=row["updated_by"],
            deleted_by=row.get("deleted_by"),
            deleted_at=row.get("deleted_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _entity_to_row(self, entity: Domain) -> dict:
        return {
            "id": entity.id,
            "domain_name": entity.domain_name,
            "user_id": entity.user_id,
            "dns_provider": entity.dns_provider,
            "verification_method": entity.verification_method,
            "auto_renew": entity.auto_renew,
            "status": entity.status.value,
            "nginx_container_name": entity.nginx_container_name,
            "created_by": entity.created_by,
            "updated_by": entity.updated_by,
            "deleted_by": entity.deleted_by,
            "deleted_at": entity.deleted_at,
        }

    @staticmethod
    def _row_to_listing(row: dict) -> DomainListing:
        return DomainListing(
            id=row["id"],
            domain_name=row["domain_name"],
            user_id=row["user_id"],
            dns_provider=row["dns_provider"],
            verification_method=row["verification_method"],
            auto_renew=row["auto_renew"],
            status=DomainStatus(row["status"]),
            nginx_container_name=row["nginx_container_name"],
            alternative_domains=tuple(row.get("alternative_domains") or ()),
            certificate_id=row.get("certificate_id"),
            cert_valid_from=row.get("cert_valid_from"),
            cert_valid_to=row.get("cert_valid_to"),
            created_by=row["created_by"],
            deleted_at=row.get("deleted_at"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- listing -------------------------------------------------------------

    def list_domains(self, filters: DomainFilters) -> list[DomainListing]:
        """Return domains with their alternative names and live certificate."""
        db = Database.get_instance()
        where, params = filters.where_clause()
        sql = f"{_LISTING_SELECT}WHERE {where} ORDER BY d.created_at DESC"
        if filters.limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params.extend([filters.limit, filters.offset])
        rows: Sequence[dict] = db.fetch_all(sql, tuple(params), as_dict=True)
        return [self._row_to_listing(r) for r in rows]

    def count_domains(self, filters: DomainFilters) -> int:
        db = Database.get_instance()
        where, params = filters.where_clause()
        count = db.fetch_value(
            f"SELECT COUNT(*) FROM domains d WHERE {where}",  # noqa: S608
            tuple(params),
        )
        return count or 0

    # -- lookups -------------------------------------------------------------

    def domain_exists(self, name: str) -> bool:
        """Return ``True`` if a non-deleted domain named *name* exists."""
        db = Database.get_instance()
        return bool(
            db.fetch_value(
                "SELECT EXISTS (SELECT 1 FROM domains "
                "WHERE domain_name = %s AND deleted_at IS NULL)",
                (name,),
            ),
        )

    def find_listing(self, selector: str) -> DomainListing | None:
        """Find a live domain listing by id, falling back to name.

        *selector* is treated as an id when it parses as a UUID.
        """
        db = Database.get_instance()
        domain_id = _as_uuid(selector)
        if domain_id is not None:
            row = db.fetch_one(
                f"{_LISTING_SELECT}WHERE d.id = %s AND d.deleted_at IS NULL",
                (domain_id,),
                as_dict=True,
            )
            if row:
                return self._row_to_listing(row)
        row = db.fetch_one(
            f"{_LISTING_SELECT}WHERE d.domain_name = %s AND d.deleted_at IS NULL",
            (selector,),
            as_dict=True,
        )
        return self._row_to_listing(row) if row else None
