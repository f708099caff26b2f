"""Row-level helpers shared by the repositories.

Identifiers are UUID4 hex strings, timestamps are ISO-8601 UTC text and
money is ``Decimal`` rendered as text, so SQLite never stores a float.
"""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def new_id() -> str:
    return uuid.uuid4().hex


def to_db_time(value: datetime | None) -> str | None:
    """Render a datetime as ISO-8601 text, assuming UTC for naive values."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def money_to_db(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def to_db_value(value: Any) -> Any:
    """Convert a model field value to its SQLite representation."""
    if isinstance(value, datetime):
        return to_db_time(value)
    if isinstance(value, Decimal):
        return money_to_db(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    return value


def update_columns(
    conn: sqlite3.Connection,
    table: str,
    row_id: str,
    fields: Mapping[str, Any],
    allowed: Iterable[str],
) -> None:
    """Update whitelisted columns of one row.

    Column names come from *allowed*, never from caller data; values are
    always bound as parameters.

    Raises:
        ValueError: If *fields* names a column outside *allowed*.
    """
    allowed_set = frozenset(allowed)
    unknown = set(fields) - allowed_set
    if unknown:
        msg = f"Cannot update {table} columns: {sorted(unknown)}"
        raise ValueError(msg)
    if not fields:
        return

    assignments = ", ".join(f"{column} = ?" for column in fields)
    params = [to_db_value(v) for v in fields.values()]
    params.append(row_id)
    conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", params)


def count_rows(conn: sqlite3.Connection, query: str, params: Iterable[Any]) -> int:
    """Run a ``SELECT COUNT(*)`` query and return the count."""
    row = conn.execute(query, list(params)).fetchone()
    return int(row[0]) if row is not None else 0
