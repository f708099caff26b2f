"""Tests for the audit store: append-only table, insert, filtered queries."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from consulthive.audit.models import AuditAction, AuditEntry
from consulthive.audit.store import init_audit_table, insert_audit_entry, query_audit_trail


@pytest.fixture
def conn(tmp_path: Path) -> sqlite3.Connection:
    connection = sqlite3.connect(str(tmp_path / "audit.db"))
    connection.row_factory = sqlite3.Row
    init_audit_table(connection)
    yield connection
    connection.close()


def _entry(**overrides) -> AuditEntry:
    fields = {
        "actor_id": "user-1",
        "action": AuditAction.OFFER_CREATED,
        "entity_type": "Offer",
        "entity_id": "offer-1",
    }
    fields.update(overrides)
    return AuditEntry(**fields)


class TestInitAuditTable:
    def test_indexes_created(self, conn: sqlite3.Connection) -> None:
        names = {
            row[0]
            for row in conn.execute(
                "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_audit_%'"
            )
        }
        assert names == {"idx_audit_actor", "idx_audit_entity", "idx_audit_timestamp"}

    def test_idempotent(self, conn: sqlite3.Connection) -> None:
        init_audit_table(conn)


class TestAppendOnly:
    def test_update_rejected(self, conn: sqlite3.Connection) -> None:
        insert_audit_entry(conn, _entry())
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            conn.execute("UPDATE audit_log SET action = 'X'")

    def test_delete_rejected(self, conn: sqlite3.Connection) -> None:
        insert_audit_entry(conn, _entry())
        with pytest.raises(sqlite3.IntegrityError, match="append-only"):
            conn.execute("DELETE FROM audit_log")


class TestInsertAndQuery:
    def test_metadata_round_trips_as_dict(self, conn: sqlite3.Connection) -> None:
        insert_audit_entry(conn, _entry(metadata={"from_state": "PENDING", "count": 2}))
        (row,) = query_audit_trail(conn)
        assert row["metadata"] == {"from_state": "PENDING", "count": 2}
        assert row["action"] == "OFFER_CREATED"

    def test_insert_does_not_commit(self, conn: sqlite3.Connection) -> None:
        conn.execute("BEGIN")
        insert_audit_entry(conn, _entry())
        conn.rollback()
        assert query_audit_trail(conn) == []

    def test_filters(self, conn: sqlite3.Connection) -> None:
        insert_audit_entry(conn, _entry())
        insert_audit_entry(
            conn,
            _entry(actor_id="user-2", action=AuditAction.REQUEST_CREATED,
                   entity_type="Request", entity_id="req-1"),
        )
        insert_audit_entry(conn, _entry(actor_id=None, entity_id="offer-2"))

        assert len(query_audit_trail(conn, actor_id="user-2")) == 1
        assert len(query_audit_trail(conn, entity_type="Offer")) == 2
        assert len(query_audit_trail(conn, entity_id="req-1")) == 1
        assert len(query_audit_trail(conn, action="OFFER_CREATED")) == 2
        assert query_audit_trail(conn, from_date="2999-01-01") == []
        assert len(query_audit_trail(conn, limit=1)) == 1

    def test_newest_first(self, conn: sqlite3.Connection) -> None:
        for i in range(3):
            insert_audit_entry(conn, _entry(entity_id=f"offer-{i}"))
        ids = [row["entity_id"] for row in query_audit_trail(conn)]
        assert ids == ["offer-2", "offer-1", "offer-0"]

    def test_filter_values_are_parameterized(self, conn: sqlite3.Connection) -> None:
        insert_audit_entry(conn, _entry())
        assert query_audit_trail(conn, actor_id="' OR 1=1 --") == []
