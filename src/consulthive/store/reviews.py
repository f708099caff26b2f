"""Review rows."""

from __future__ import annotations

import sqlite3

from consulthive.domain.models import Review
from consulthive.domain.types import ReviewType
from consulthive.store.rows import new_id, to_db_time, utcnow


class ReviewRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_for_author(
        self, engagement_id: str, author_id: str, review_type: ReviewType
    ) -> Review | None:
        row = self._conn.execute(
            "SELECT * FROM reviews WHERE engagement_id = ? AND author_id = ? AND type = ?",
            (engagement_id, author_id, review_type.value),
        ).fetchone()
        return Review.model_validate(dict(row)) if row is not None else None

    def insert(
        self,
        *,
        engagement_id: str,
        author_id: str,
        target_id: str,
        review_type: ReviewType,
        rating: int,
        comment: str | None = None,
        is_public: bool = True,
    ) -> Review:
        """Insert a review.

        Raises:
            sqlite3.IntegrityError: If the author already reviewed this
                engagement in the same direction.
        """
        review = Review(
            id=new_id(),
            engagement_id=engagement_id,
            author_id=author_id,
            target_id=target_id,
            type=review_type,
            rating=rating,
            comment=comment,
            is_public=is_public,
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO reviews (
                id, engagement_id, author_id, target_id, type, rating,
                comment, is_public, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                review.id,
                review.engagement_id,
                review.author_id,
                review.target_id,
                review.type.value,
                review.rating,
                review.comment,
                int(review.is_public),
                to_db_time(review.created_at),
            ),
        )
        return review

    def list_public_for_target(self, target_id: str) -> list[Review]:
        rows = self._conn.execute(
            "SELECT * FROM reviews WHERE target_id = ? AND is_public = 1 "
            "ORDER BY created_at DESC, id DESC",
            (target_id,),
        ).fetchall()
        return [Review.model_validate(dict(row)) for row in rows]

    def list_for_engagement(self, engagement_id: str) -> list[Review]:
        rows = self._conn.execute(
            "SELECT * FROM reviews WHERE engagement_id = ? ORDER BY created_at ASC, id ASC",
            (engagement_id,),
        ).fetchall()
        return [Review.model_validate(dict(row)) for row in rows]
