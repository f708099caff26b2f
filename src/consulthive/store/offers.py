"""Offer rows."""

from __future__ import annotations

import sqlite3
from decimal import Decimal
from typing import Any

from consulthive.domain.models import Offer
from consulthive.domain.types import OfferStatus
from consulthive.store.rows import count_rows, money_to_db, new_id, to_db_time, utcnow


class OfferRepository:
    """Persist and query consultant Offers."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, offer_id: str) -> Offer | None:
        row = self._conn.execute("SELECT * FROM offers WHERE id = ?", (offer_id,)).fetchone()
        return Offer.model_validate(dict(row)) if row is not None else None

    def get_for_consultant(self, request_id: str, consultant_id: str) -> Offer | None:
        row = self._conn.execute(
            "SELECT * FROM offers WHERE request_id = ? AND consultant_id = ?",
            (request_id, consultant_id),
        ).fetchone()
        return Offer.model_validate(dict(row)) if row is not None else None

    def insert(
        self,
        request_id: str,
        consultant_id: str,
        *,
        proposed_rate: Decimal,
        message: str | None = None,
    ) -> Offer:
        """Insert a PENDING offer.

        Raises:
            sqlite3.IntegrityError: If the consultant already has an offer
                on this request.
        """
        now = utcnow()
        offer = Offer(
            id=new_id(),
            request_id=request_id,
            consultant_id=consultant_id,
            message=message,
            proposed_rate=proposed_rate,
            status=OfferStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._conn.execute(
            """
            INSERT INTO offers (
                id, request_id, consultant_id, message, proposed_rate,
                status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                offer.id,
                offer.request_id,
                offer.consultant_id,
                offer.message,
                money_to_db(offer.proposed_rate),
                offer.status.value,
                to_db_time(now),
                to_db_time(now),
            ),
        )
        return offer

    def set_status(self, offer_id: str, status: OfferStatus) -> None:
        self._conn.execute(
            "UPDATE offers SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, to_db_time(utcnow()), offer_id),
        )

    def decline_other_pending(self, request_id: str, accepted_offer_id: str) -> int:
        """Decline every other PENDING offer on a request.

        Returns:
            The number of offers declined.
        """
        cursor = self._conn.execute(
            """
            UPDATE offers SET status = ?, updated_at = ?
            WHERE request_id = ? AND id != ? AND status = ?
            """,
            (
                OfferStatus.DECLINED.value,
                to_db_time(utcnow()),
                request_id,
                accepted_offer_id,
                OfferStatus.PENDING.value,
            ),
        )
        return cursor.rowcount

    def count_accepted(self, request_id: str) -> int:
        return count_rows(
            self._conn,
            "SELECT COUNT(*) FROM offers WHERE request_id = ? AND status = ?",
            (request_id, OfferStatus.ACCEPTED.value),
        )

    def search(
        self,
        *,
        request_id: str | None = None,
        consultant_id: str | None = None,
        request_owner_id: str | None = None,
        status: OfferStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Offer], int]:
        """List offers newest first, filtered by request, consultant or owner.

        Returns:
            The page of offers and the total number matching the filters.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if request_id is not None:
            conditions.append("o.request_id = ?")
            params.append(request_id)
        if consultant_id is not None:
            conditions.append("o.consultant_id = ?")
            params.append(consultant_id)
        if request_owner_id is not None:
            conditions.append("r.creator_id = ?")
            params.append(request_owner_id)
        if status is not None:
            conditions.append("o.status = ?")
            params.append(status.value)

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        base = f"FROM offers o JOIN requests r ON r.id = o.request_id {where_clause}"
        total = count_rows(self._conn, f"SELECT COUNT(*) {base}", params)
        rows = self._conn.execute(
            f"SELECT o.* {base} ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        ).fetchall()
        return [Offer.model_validate(dict(row)) for row in rows], total
