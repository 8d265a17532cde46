"""Unit tests for certsmith.db.unit_of_work: UnitOfWork."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from certsmith.core.entity import EntityBuilder
from certsmith.db.unit_of_work import UnitOfWork, _Rollback

NOW = datetime(2026, 1, 1, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_database():
    """Create a mock Database with transaction context manager support."""
    db = MagicMock()
    conn = MagicMock()
    tx = MagicMock()
    tx.__enter__ = MagicMock(return_value=conn)
    tx.__exit__ = MagicMock(return_value=False)
    db.transaction.return_value = tx
    return db, conn, tx


def _mock_cursor(return_value=None, fetchall_value=None, rowcount=1):
    """Create a mock cursor context manager."""
    cursor = MagicMock()
    cursor.fetchone.return_value = return_value
    cursor.fetchall.return_value = fetchall_value or []
    cursor.rowcount = rowcount
    cursor.__enter__ = MagicMock(return_value=cursor)
    cursor.__exit__ = MagicMock(return_value=False)
    return cursor


# ---------------------------------------------------------------------------
# Transaction lifecycle
# ---------------------------------------------------------------------------


class TestTransaction:
    def test_enters_transaction_and_sets_connection(self):
        db, conn, tx = _mock_database()
        uow = UnitOfWork(db)

        with uow as ctx:
            assert ctx is uow
            assert uow._conn is conn
            assert uow._finished is False

        db.transaction.assert_called_once()
        tx.__enter__.assert_called_once()

    def test_clean_exit_commits(self):
        db, _conn, tx = _mock_database()

        with UnitOfWork(db):
            pass

        tx.__exit__.assert_called_once_with(None, None, None)

    def test_explicit_commit_is_not_repeated_on_exit(self):
        db, _conn, tx = _mock_database()

        with UnitOfWork(db) as uow:
            uow.commit()
            assert uow._finished is True

        tx.__exit__.assert_called_once_with(None, None, None)

    def test_exception_rolls_back_and_propagates(self):
        db, _conn, tx = _mock_database()

        with pytest.raises(ValueError, match="boom"), UnitOfWork(db):
            raise ValueError("boom")

        exc_type = tx.__exit__.call_args.args[0]
        assert exc_type is _Rollback

    def test_failing_rollback_does_not_replace_original_error(self):
        db, _conn, tx = _mock_database()
        tx.__exit__.side_effect = RuntimeError("connection already closed")

        with pytest.raises(ValueError, match="boom"), UnitOfWork(db):
            raise ValueError("boom")

    def test_commit_error_propagates_and_releases_connection(self):
        db, _conn, tx = _mock_database()
        tx.__exit__.side_effect = RuntimeError("commit failed")

        with UnitOfWork(db) as uow:
            with pytest.raises(RuntimeError, match="commit failed"):
                uow.commit()
            assert uow._conn is None
            assert uow._finished is True

    def test_operations_outside_context_raise(self):
        db, _conn, _tx = _mock_database()
        uow = UnitOfWork(db)

        with pytest.raises(RuntimeError):
            uow.execute("SELECT 1")
        with pytest.raises(RuntimeError):
            uow.commit()


# ---------------------------------------------------------------------------
# Entity operations
# ---------------------------------------------------------------------------


class TestInsert:
    def test_builds_insert_with_returning_id(self):
        db, conn, _tx = _mock_database()
        cursor = _mock_cursor(return_value={"id": "abc-123"})
        conn.cursor.return_value = cursor
        entity = (
            EntityBuilder("domains")
            .text("domain_name", "example.com")
            .boolean("auto_renew", True)
            .build()
        )

        with UnitOfWork(db) as uow:
            row_id = uow.insert(entity)

        assert row_id == "abc-123"
        sql, params = cursor.execute.call_args.args
        assert sql == (
            "INSERT INTO domains (domain_name, auto_renew) VALUES (%s, %s) RETURNING id"
        )
        assert params == ["example.com", True]

    def test_missing_id_is_an_error(self):
        db, conn, _tx = _mock_database()
        conn.cursor.return_value = _mock_cursor(return_value=None)

        with pytest.raises(RuntimeError, match="returned no id"), UnitOfWork(db) as uow:
            uow.insert(EntityBuilder("events").text("actor", "alice").build())


class TestUpdate:
    def test_sets_columns_and_touches_updated_at(self):
        db, conn, _tx = _mock_database()
        cursor = _mock_cursor(rowcount=1)
        conn.cursor.return_value = cursor

        with UnitOfWork(db) as uow:
            changed = uow.update(
                EntityBuilder("domains").text("status", "active").build(),
                "d-1",
            )

        assert changed is True
        sql, params = cursor.execute.call_args.args
        assert sql == "UPDATE domains SET status = %s, updated_at = now() WHERE id = %s"
        assert params == ["active", "d-1"]

    def test_explicit_updated_at_is_kept(self):
        db, conn, _tx = _mock_database()
        cursor = _mock_cursor(rowcount=0)
        conn.cursor.return_value = cursor

        with UnitOfWork(db) as uow:
            changed = uow.update(
                EntityBuilder("certificates").timestamp("updated_at", NOW).build(),
                "c-1",
            )

        assert changed is False
        sql, _params = cursor.execute.call_args.args
        assert sql == "UPDATE certificates SET updated_at = %s WHERE id = %s"


class TestLookupId:
    def test_matches_live_rows_only(self):
        db, conn, _tx = _mock_database()
        cursor = _mock_cursor(return_value={"id": "d-1"})
        conn.cursor.return_value = cursor

        with UnitOfWork(db) as uow:
            found = uow.lookup_id(
                EntityBuilder("domains").text("domain_name", "example.com").build(),
            )

        assert found == "d-1"
        sql, params = cursor.execute.call_args.args
        assert sql == (
            "SELECT id FROM domains WHERE domain_name = %s AND deleted_at IS NULL LIMIT 1"
        )
        assert params == ["example.com"]

    def test_no_match_is_empty_string(self):
        db, conn, _tx = _mock_database()
        conn.cursor.return_value = _mock_cursor(return_value=None)

        with UnitOfWork(db) as uow:
            found = uow.lookup_id(EntityBuilder("certificates").text("domain_id", "d-9").build())

        assert found == ""


class TestRawHelpers:
    def test_execute_returns_rowcount(self):
        db, conn, _tx = _mock_database()
        conn.cursor.return_value = _mock_cursor(rowcount=3)

        with UnitOfWork(db) as uow:
            assert uow.execute("DELETE FROM events") == 3
