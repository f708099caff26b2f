"""Engagements and their workspace records: messages, notes, checklist."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

from consulthive.domain.models import ChecklistItem, Engagement, Message, Note
from consulthive.domain.types import EngagementStatus
from consulthive.store.rows import count_rows, new_id, to_db_time, update_columns, utcnow

ENGAGEMENT_COLUMNS: frozenset[str] = frozenset(
    {"status", "agenda", "video_link", "ended_at", "updated_at"}
)
NOTE_COLUMNS: frozenset[str] = frozenset({"title", "content", "is_private", "updated_at"})


class EngagementRepository:
    """Persist and query Engagement rows."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, engagement_id: str) -> Engagement | None:
        row = self._conn.execute(
            "SELECT * FROM engagements WHERE id = ?", (engagement_id,)
        ).fetchone()
        return Engagement.model_validate(dict(row)) if row is not None else None

    def get_by_booking(self, booking_id: str) -> Engagement | None:
        row = self._conn.execute(
            "SELECT * FROM engagements WHERE booking_id = ?", (booking_id,)
        ).fetchone()
        return Engagement.model_validate(dict(row)) if row is not None else None

    def insert(self, booking_id: str) -> Engagement:
        """Open an ACTIVE engagement for a booking.

        Raises:
            sqlite3.IntegrityError: If the booking already has an engagement.
        """
        now = utcnow()
        engagement = Engagement(
            id=new_id(),
            booking_id=booking_id,
            status=EngagementStatus.ACTIVE,
            started_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO engagements (id, booking_id, status, started_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                engagement.id,
                engagement.booking_id,
                engagement.status.value,
                to_db_time(now),
                to_db_time(now),
            ),
        )
        return engagement

    def update_fields(self, engagement_id: str, fields: dict[str, Any]) -> None:
        update_columns(
            self._conn,
            "engagements",
            engagement_id,
            {**fields, "updated_at": utcnow()},
            ENGAGEMENT_COLUMNS,
        )

    def set_status(
        self,
        engagement_id: str,
        status: EngagementStatus,
        *,
        ended_at: datetime | None = None,
    ) -> None:
        fields: dict[str, Any] = {"status": status.value}
        if ended_at is not None:
            fields["ended_at"] = ended_at
        self.update_fields(engagement_id, fields)

    def search_for_participant(
        self,
        user_id: str,
        *,
        status: EngagementStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Engagement], int]:
        """List engagements whose booking names *user_id* as client or consultant."""
        conditions = ["(b.client_id = ? OR b.consultant_id = ?)"]
        params: list[Any] = [user_id, user_id]
        if status is not None:
            conditions.append("e.status = ?")
            params.append(status.value)

        base = (
            "FROM engagements e JOIN bookings b ON b.id = e.booking_id "
            "WHERE " + " AND ".join(conditions)
        )
        total = count_rows(self._conn, f"SELECT COUNT(*) {base}", params)
        rows = self._conn.execute(
            f"SELECT e.* {base} ORDER BY e.started_at DESC, e.id DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return [Engagement.model_validate(dict(row)) for row in rows], total


class WorkspaceRepository:
    """Append-mostly workspace records scoped to one engagement."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, engagement_id: str, author_id: str, content: str) -> Message:
        row = self._conn.execute(
            "SELECT COALESCE(MAX(seq), -1) + 1 FROM messages WHERE engagement_id = ?",
            (engagement_id,),
        ).fetchone()
        message = Message(
            id=new_id(),
            engagement_id=engagement_id,
            author_id=author_id,
            content=content,
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO messages (id, seq, engagement_id, author_id, content, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.id,
                row[0],
                message.engagement_id,
                message.author_id,
                message.content,
                to_db_time(message.created_at),
            ),
        )
        return message

    def list_messages(
        self,
        engagement_id: str,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Message]:
        """Return messages oldest first (created_at, then insertion order)."""
        query = (
            "SELECT id, engagement_id, author_id, content, created_at FROM messages "
            "WHERE engagement_id = ? ORDER BY created_at ASC, seq ASC"
        )
        params: list[Any] = [engagement_id]
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        rows = self._conn.execute(query, params).fetchall()
        return [Message.model_validate(dict(row)) for row in rows]

    def count_messages(self, engagement_id: str) -> int:
        return count_rows(
            self._conn, "SELECT COUNT(*) FROM messages WHERE engagement_id = ?", (engagement_id,)
        )

    def latest_messages(self, engagement_id: str, count: int = 10) -> list[Message]:
        """Return the newest *count* messages, still in chronological order."""
        rows = self._conn.execute(
            """
            SELECT id, engagement_id, author_id, content, created_at FROM messages
            WHERE engagement_id = ? ORDER BY created_at DESC, seq DESC LIMIT ?
            """,
            (engagement_id, count),
        ).fetchall()
        return [Message.model_validate(dict(row)) for row in reversed(rows)]

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def add_note(
        self,
        engagement_id: str,
        author_id: str,
        *,
        content: str,
        title: str | None = None,
        is_private: bool = False,
    ) -> Note:
        now = utcnow()
        note = Note(
            id=new_id(),
            engagement_id=engagement_id,
            author_id=author_id,
            title=title,
            content=content,
            is_private=is_private,
            created_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO notes (
                id, engagement_id, author_id, title, content, is_private,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                note.id,
                note.engagement_id,
                note.author_id,
                note.title,
                note.content,
                int(note.is_private),
                to_db_time(now),
                to_db_time(now),
            ),
        )
        return note

    def get_note(self, note_id: str) -> Note | None:
        row = self._conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        return Note.model_validate(dict(row)) if row is not None else None

    def update_note(self, note_id: str, fields: dict[str, Any]) -> None:
        update_columns(
            self._conn, "notes", note_id, {**fields, "updated_at": utcnow()}, NOTE_COLUMNS
        )

    def list_notes(self, engagement_id: str, viewer_id: str) -> list[Note]:
        """Return shared notes plus the viewer's own private ones, oldest first."""
        rows = self._conn.execute(
            """
            SELECT * FROM notes
            WHERE engagement_id = ? AND (is_private = 0 OR author_id = ?)
            ORDER BY created_at ASC, id ASC
            """,
            (engagement_id, viewer_id),
        ).fetchall()
        return [Note.model_validate(dict(row)) for row in rows]

    def list_shared_notes(self, engagement_id: str) -> list[Note]:
        rows = self._conn.execute(
            """
            SELECT * FROM notes WHERE engagement_id = ? AND is_private = 0
            ORDER BY created_at ASC, id ASC
            """,
            (engagement_id,),
        ).fetchall()
        return [Note.model_validate(dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    def add_checklist_item(self, engagement_id: str, text: str) -> ChecklistItem:
        """Append an item at position max + 1 (0 for the first item)."""
        row = self._conn.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM checklist_items "
            "WHERE engagement_id = ?",
            (engagement_id,),
        ).fetchone()
        item = ChecklistItem(
            id=new_id(),
            engagement_id=engagement_id,
            text=text,
            is_completed=False,
            position=row[0],
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO checklist_items (
                id, engagement_id, text, is_completed, position, created_at
            ) VALUES (?, ?, ?, 0, ?, ?)
            """,
            (
                item.id,
                item.engagement_id,
                item.text,
                item.position,
                to_db_time(item.created_at),
            ),
        )
        return item

    def get_checklist_item(self, item_id: str) -> ChecklistItem | None:
        row = self._conn.execute(
            "SELECT * FROM checklist_items WHERE id = ?", (item_id,)
        ).fetchone()
        return ChecklistItem.model_validate(dict(row)) if row is not None else None

    def toggle_checklist_item(self, item_id: str) -> None:
        self._conn.execute(
            "UPDATE checklist_items SET is_completed = 1 - is_completed WHERE id = ?",
            (item_id,),
        )

    def list_checklist(self, engagement_id: str) -> list[ChecklistItem]:
        rows = self._conn.execute(
            "SELECT * FROM checklist_items WHERE engagement_id = ? ORDER BY position ASC",
            (engagement_id,),
        ).fetchall()
        return [ChecklistItem.model_validate(dict(row)) for row in rows]
