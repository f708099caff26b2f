"""TransferPack rows: the single knowledge-transfer document per engagement."""

from __future__ import annotations

import sqlite3
from typing import Any

from consulthive.domain.models import TransferPack
from consulthive.store.rows import new_id, to_db_time, update_columns, utcnow

CONTENT_COLUMNS: tuple[str, ...] = (
    "summary",
    "key_decisions",
    "runbook",
    "next_steps",
    "internalization_checklist",
)


class TransferPackRepository:
    """Persist the TransferPack of an engagement."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_by_engagement(self, engagement_id: str) -> TransferPack | None:
        row = self._conn.execute(
            "SELECT * FROM transfer_packs WHERE engagement_id = ?", (engagement_id,)
        ).fetchone()
        return TransferPack.model_validate(dict(row)) if row is not None else None

    def upsert_generated(self, engagement_id: str, content: dict[str, str | None]) -> TransferPack:
        """Write generated content, creating the pack on first use.

        Only touches a pack that is not finalized; the caller checks
        finalization in the same transaction first.
        """
        now = to_db_time(utcnow())
        values = [content.get(column) for column in CONTENT_COLUMNS]
        self._conn.execute(
            """
            INSERT INTO transfer_packs (
                id, engagement_id, summary, key_decisions, runbook, next_steps,
                internalization_checklist, ai_generated, is_finalized,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 1, 0, ?, ?)
            ON CONFLICT(engagement_id) DO UPDATE SET
                summary = excluded.summary,
                key_decisions = excluded.key_decisions,
                runbook = excluded.runbook,
                next_steps = excluded.next_steps,
                internalization_checklist = excluded.internalization_checklist,
                ai_generated = 1,
                updated_at = excluded.updated_at
            WHERE transfer_packs.is_finalized = 0
            """,
            (new_id(), engagement_id, *values, now, now),
        )
        pack = self.get_by_engagement(engagement_id)
        if pack is None:
            msg = f"Transfer pack for engagement {engagement_id} vanished after upsert"
            raise RuntimeError(msg)
        return pack

    def update_content(self, pack_id: str, fields: dict[str, Any]) -> None:
        update_columns(
            self._conn,
            "transfer_packs",
            pack_id,
            {**fields, "updated_at": utcnow()},
            (*CONTENT_COLUMNS, "updated_at"),
        )

    def finalize(self, pack_id: str) -> None:
        now = utcnow()
        update_columns(
            self._conn,
            "transfer_packs",
            pack_id,
            {"is_finalized": True, "finalized_at": now, "updated_at": now},
            ("is_finalized", "finalized_at", "updated_at"),
        )
