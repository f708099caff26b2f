"""Request rows and their required-skill links."""

from __future__ import annotations

import sqlite3
from decimal import Decimal
from typing import Any

from consulthive.domain.models import Request, SkillTag
from consulthive.domain.types import RequestStatus, Urgency
from consulthive.store.rows import (
    count_rows,
    money_to_db,
    new_id,
    to_db_time,
    update_columns,
    utcnow,
)

# Columns a patch may touch; creator_id and created_at never change.
UPDATABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "title",
        "raw_description",
        "refined_summary",
        "constraints",
        "desired_outcome",
        "suggested_duration",
        "urgency",
        "budget",
        "currency",
        "is_public",
        "status",
    }
)


class RequestRepository:
    """Persist and query client Requests."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _skills(self, request_id: str) -> list[str]:
        rows = self._conn.execute(
            """
            SELECT t.slug FROM request_skills rs
            JOIN skill_tags t ON t.id = rs.skill_tag_id
            WHERE rs.request_id = ? ORDER BY t.slug
            """,
            (request_id,),
        ).fetchall()
        return [row["slug"] for row in rows]

    def _build(self, row: sqlite3.Row) -> Request:
        data = dict(row)
        data["required_skills"] = self._skills(data["id"])
        return Request.model_validate(data)

    def get(self, request_id: str) -> Request | None:
        row = self._conn.execute("SELECT * FROM requests WHERE id = ?", (request_id,)).fetchone()
        return self._build(row) if row is not None else None

    def insert(
        self,
        creator_id: str,
        *,
        title: str,
        raw_description: str,
        currency: str,
        urgency: Urgency = Urgency.NORMAL,
        constraints: str | None = None,
        desired_outcome: str | None = None,
        suggested_duration: int | None = None,
        budget: Decimal | None = None,
        is_public: bool = True,
        skill_tags: list[SkillTag] | None = None,
    ) -> Request:
        """Insert a new Request in DRAFT and link its skill tags."""
        now = utcnow()
        tags = skill_tags or []
        request = Request(
            id=new_id(),
            creator_id=creator_id,
            title=title,
            raw_description=raw_description,
            constraints=constraints,
            desired_outcome=desired_outcome,
            suggested_duration=suggested_duration,
            urgency=urgency,
            budget=budget,
            currency=currency,
            is_public=is_public,
            status=RequestStatus.DRAFT,
            required_skills=sorted(tag.slug for tag in tags),
            created_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO requests (
                id, creator_id, title, raw_description, refined_summary,
                constraints, desired_outcome, suggested_duration, urgency,
                budget, currency, is_public, status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, NULL, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.id,
                request.creator_id,
                request.title,
                request.raw_description,
                request.constraints,
                request.desired_outcome,
                request.suggested_duration,
                request.urgency.value,
                money_to_db(request.budget),
                request.currency,
                int(request.is_public),
                request.status.value,
                to_db_time(now),
                to_db_time(now),
            ),
        )
        self.set_skills(request.id, tags)
        return request

    def update_fields(self, request_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update and bump ``updated_at``."""
        update_columns(
            self._conn,
            "requests",
            request_id,
            {**fields, "updated_at": utcnow()},
            UPDATABLE_COLUMNS | {"updated_at"},
        )

    def set_status(self, request_id: str, status: RequestStatus) -> None:
        self.update_fields(request_id, {"status": status.value})

    def set_skills(self, request_id: str, skill_tags: list[SkillTag]) -> None:
        """Replace the Request's skill links with *skill_tags*."""
        self._conn.execute("DELETE FROM request_skills WHERE request_id = ?", (request_id,))
        self._conn.executemany(
            "INSERT INTO request_skills (request_id, skill_tag_id) VALUES (?, ?)",
            [(request_id, tag.id) for tag in skill_tags],
        )

    def search(
        self,
        *,
        creator_id: str | None = None,
        public_only: bool = False,
        status: RequestStatus | None = None,
        urgency: Urgency | None = None,
        min_budget: Decimal | None = None,
        max_budget: Decimal | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Request], int]:
        """List Requests newest first.

        Returns:
            The page of Requests and the total number matching the filters.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if creator_id is not None:
            conditions.append("creator_id = ?")
            params.append(creator_id)
        if public_only:
            conditions.append("is_public = 1")
        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)
        if urgency is not None:
            conditions.append("urgency = ?")
            params.append(urgency.value)
        if min_budget is not None:
            conditions.append("budget IS NOT NULL AND CAST(budget AS NUMERIC) >= ?")
            params.append(str(min_budget))
        if max_budget is not None:
            conditions.append("budget IS NOT NULL AND CAST(budget AS NUMERIC) <= ?")
            params.append(str(max_budget))

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        total = count_rows(self._conn, f"SELECT COUNT(*) FROM requests {where_clause}", params)
        rows = self._conn.execute(
            f"SELECT * FROM requests {where_clause} "
            "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return [self._build(row) for row in rows], total
