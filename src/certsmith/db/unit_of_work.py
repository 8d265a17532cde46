"""Unit of Work: entity writes on a single transaction.

PyPGKit's :class:`BaseRepository` methods each borrow their own pooled
connection, so multi-row writes made through them are not atomic.  A
:class:`UnitOfWork` holds one connection for the lifetime of a
transaction and exposes the transactional half of the repository
contract (``insert`` / ``update`` / ``lookup_id``) in terms of
:class:`~certsmith.core.entity.Entity` values.

Usage::

    from certsmith.db import UnitOfWork

    with UnitOfWork(db) as uow:
        domain_id = uow.insert(domain_entity)
        uow.update(activate_entity, domain_id)
        uow.commit()
    # ROLLBACK on exception; COMMIT on clean exit if not already finished

The connection goes back to the pool on every exit path.  A failing
rollback is logged and never replaces the exception that caused it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Self

from psycopg.rows import dict_row
from pypgkit import Database

if TYPE_CHECKING:
    from certsmith.core.entity import Entity

log = logging.getLogger(__name__)


class _Rollback(Exception):  # noqa: N818
    """Raised into the transaction context to force a ROLLBACK."""


class UnitOfWork:
    """Transaction-scoped writer for :class:`Entity` rows."""

    def __init__(self, database: Database | None = None) -> None:
        self._db = database or Database.get_instance()
        self._tx = None
        self._conn = None
        self._finished = True

    # -- context manager -----------------------------------------------------

    def __enter__(self) -> Self:
        self._tx = self._db.transaction()
        self._conn = self._tx.__enter__()
        self._finished = False
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._finished:
            return
        if exc_type is None:
            self.commit()
            return
        try:
            self.rollback()
        except Exception:
            log.exception("Rollback failed while handling %s", exc_type.__name__)

    def commit(self) -> None:
        """COMMIT the transaction; errors propagate to the caller."""
        self._require_open()
        self._finished = True
        try:
            self._tx.__exit__(None, None, None)
        finally:
            self._conn = None

    def rollback(self) -> None:
        """ROLLBACK the transaction."""
        self._require_open()
        self._finished = True
        marker = _Rollback()
        try:
            self._tx.__exit__(_Rollback, marker, None)
        finally:
            self._conn = None

    def _require_open(self) -> None:
        if self._finished or self._conn is None:
            msg = "UnitOfWork is not active (use it as a context manager)"
            raise RuntimeError(msg)

    # -- entity operations ---------------------------------------------------

    def insert(self, entity: Entity) -> str:
        """INSERT *entity* and return the generated id as a string."""
        columns = entity.columns()
        if columns:
            col_list = ", ".join(columns)
            placeholders = ", ".join(["%s"] * len(columns))
            sql = (
                f"INSERT INTO {entity.table} ({col_list}) "  # noqa: S608
                f"VALUES ({placeholders}) RETURNING id"
            )
        else:
            sql = f"INSERT INTO {entity.table} DEFAULT VALUES RETURNING id"
        row = self.fetch_one(sql, list(columns.values()))
        if row is None:
            msg = f"INSERT into {entity.table} returned no id"
            raise RuntimeError(msg)
        return str(row["id"])

    def update(self, entity: Entity, row_id: str) -> bool:
        """UPDATE the row *row_id* of ``entity.table`` with the entity's columns.

        ``updated_at`` is set to ``now()`` unless the entity carries it.
        Returns ``True`` when a row was changed.
        """
        columns = entity.columns()
        set_parts = [f"{col} = %s" for col in columns]
        if "updated_at" not in columns:
            set_parts.append("updated_at = now()")
        sql = f"UPDATE {entity.table} SET {', '.join(set_parts)} WHERE id = %s"  # noqa: S608
        return self.execute(sql, [*columns.values(), row_id]) > 0

    def lookup_id(self, entity: Entity) -> str:
        """Return the id of the first live row matching every column, or ``""``."""
        columns = entity.columns()
        conditions = [f"{col} = %s" for col in columns]
        conditions.append("deleted_at IS NULL")
        sql = (
            f"SELECT id FROM {entity.table} "  # noqa: S608
            f"WHERE {' AND '.join(conditions)} LIMIT 1"
        )
        row = self.fetch_one(sql, list(columns.values()))
        return str(row["id"]) if row else ""

    # -- raw helpers ---------------------------------------------------------

    def execute(self, sql: str, params: tuple | list | None = None) -> int:
        """Execute arbitrary SQL and return the rowcount."""
        self._require_open()
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            return cur.rowcount

    def fetch_one(
        self,
        sql: str,
        params: tuple | list | None = None,
    ) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or None."""
        self._require_open()
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(sql, params)
            return cur.fetchone()
