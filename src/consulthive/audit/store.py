"""SQLite-backed audit trail with append-only enforcement and indexed queries.

Provides functions to create the audit table, insert entries, and query the
trail with flexible filtering.  Uses parameterized queries exclusively
(never string concatenation) to prevent SQL injection.

Entries are written on the caller's connection without committing, so an
audit row lands in the same transaction as the change it describes and
disappears with it on rollback.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from typing import Any

from consulthive.audit.models import AuditEntry


def init_audit_table(conn: sqlite3.Connection) -> None:
    """Create the audit_log table, its indexes and the append-only triggers.

    Args:
        conn: An open sqlite3.Connection.
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            actor_id TEXT,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            metadata TEXT
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_actor ON audit_log (actor_id)")
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log (entity_type, entity_id)"
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp)")

    conn.execute("""
        CREATE TRIGGER IF NOT EXISTS audit_log_no_update
        BEFORE UPDATE ON audit_log
        BEGIN
            SELECT RAISE(ABORT, 'audit_log is append-only');
        END
    """)
    conn.execute("""
        CREATE TRIGGER IF NOT EXISTS audit_log_no_delete
        BEFORE DELETE ON audit_log
        BEGIN
            SELECT RAISE(ABORT, 'audit_log is append-only');
        END
    """)


def insert_audit_entry(conn: sqlite3.Connection, entry: AuditEntry) -> int:
    """Insert an audit entry on the caller's connection.

    Does not commit; the enclosing transaction decides.

    Args:
        conn: An open database connection, usually inside a transaction.
        entry: The audit entry to insert.

    Returns:
        The row ID of the inserted entry.
    """
    metadata_json: str | None = None
    if entry.metadata is not None:
        metadata_json = json.dumps(entry.metadata, default=str)

    cursor = conn.execute(
        """
        INSERT INTO audit_log (
            timestamp, actor_id, action, entity_type, entity_id, metadata
        ) VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            datetime.now(tz=UTC).isoformat(),
            entry.actor_id,
            entry.action.value,
            entry.entity_type,
            entry.entity_id,
            metadata_json,
        ),
    )
    return cursor.lastrowid or 0


def query_audit_trail(
    conn: sqlite3.Connection,
    *,
    actor_id: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """Query the audit trail with flexible filtering.

    All filters are optional.  Results are ordered newest first, with the
    row id breaking ties between entries written in the same instant.

    Args:
        conn: An open database connection.
        actor_id: Filter by acting user id (exact match).
        entity_type: Filter by entity type (exact match).
        entity_id: Filter by entity id (exact match).
        action: Filter by action (exact match).
        from_date: Filter entries on or after this ISO 8601 date.
        to_date: Filter entries on or before this ISO 8601 date.
        limit: Maximum number of results to return (default 50).

    Returns:
        A list of dicts, one per matching audit entry, newest first.
    """
    conditions: list[str] = []
    params: list[str | int] = []

    if actor_id is not None:
        conditions.append("actor_id = ?")
        params.append(actor_id)

    if entity_type is not None:
        conditions.append("entity_type = ?")
        params.append(entity_type)

    if entity_id is not None:
        conditions.append("entity_id = ?")
        params.append(entity_id)

    if action is not None:
        conditions.append("action = ?")
        params.append(action)

    if from_date is not None:
        conditions.append("timestamp >= ?")
        params.append(from_date)

    if to_date is not None:
        conditions.append("timestamp <= ?")
        params.append(to_date)

    where_clause = ""
    if conditions:
        where_clause = "WHERE " + " AND ".join(conditions)

    query = (
        f"SELECT id, timestamp, actor_id, action, entity_type, entity_id, metadata "
        f"FROM audit_log {where_clause} ORDER BY timestamp DESC, id DESC LIMIT ?"
    )
    params.append(limit)

    rows = conn.execute(query, params).fetchall()

    results: list[dict[str, Any]] = []
    for row in rows:
        row_dict = dict(row)
        # Deserialize metadata JSON back to dict if present
        if row_dict.get("metadata") is not None:
            row_dict["metadata"] = json.loads(row_dict["metadata"])
        results.append(row_dict)

    return results
