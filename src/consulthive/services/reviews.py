"""Post-engagement reviews between the two participants."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Principal
from consulthive.domain.types import EngagementStatus, ReviewType
from consulthive.operations.inputs import CreateReviewInput, ListReviewsInput
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, ok
from consulthive.services.common import load_engagement, service_operation
from consulthive.store.database import Database

logger = structlog.get_logger()

REVIEWABLE_STATES: frozenset[EngagementStatus] = frozenset(
    {EngagementStatus.COMPLETED, EngagementStatus.TRANSFERRED}
)


class ReviewService:
    def __init__(self, database: Database, settings: Settings) -> None:
        self._db = database
        self._settings = settings

    @service_operation
    def create(self, principal: Principal, data: CreateReviewInput) -> OperationResult[Any]:
        """Review the other participant of a finished engagement.

        The direction and target follow from which side the author is on:
        the client reviews the consultant and vice versa.
        """
        if not 1 <= data.rating <= 5:
            raise OperationError(ErrorCode.INVALID_INPUT, "Rating must be between 1 and 5")

        try:
            with self._db.transaction() as uow:
                engagement, booking = load_engagement(uow, data.engagement_id, principal)
                if engagement.status not in REVIEWABLE_STATES:
                    raise OperationError(
                        ErrorCode.INVALID_STATUS, f"Engagement is {engagement.status.value}"
                    )

                if principal.user_id == booking.client_id:
                    review_type = ReviewType.CLIENT_TO_CONSULTANT
                    target_id = booking.consultant_id
                else:
                    review_type = ReviewType.CONSULTANT_TO_CLIENT
                    target_id = booking.client_id

                if uow.reviews.get_for_author(engagement.id, principal.user_id, review_type):
                    raise OperationError(ErrorCode.ALREADY_EXISTS, "Review already exists")

                review = uow.reviews.insert(
                    engagement_id=engagement.id,
                    author_id=principal.user_id,
                    target_id=target_id,
                    review_type=review_type,
                    rating=data.rating,
                    comment=data.comment,
                    is_public=data.is_public,
                )
                uow.audit.log(
                    principal.user_id,
                    AuditAction.REVIEW_CREATED,
                    "Review",
                    review.id,
                    {"engagement_id": engagement.id, "rating": review.rating},
                )
        except sqlite3.IntegrityError as exc:
            raise OperationError(ErrorCode.ALREADY_EXISTS, "Review already exists") from exc

        logger.info("Review created", review_id=review.id, engagement_id=review.engagement_id)
        return ok(review)

    @service_operation
    def list(self, principal: Principal, data: ListReviewsInput) -> OperationResult[Any]:
        """All reviews of an engagement for its participants, else public reviews of a user."""
        with self._db.transaction(immediate=False) as uow:
            if data.engagement_id is not None:
                engagement, _ = load_engagement(uow, data.engagement_id, principal)
                reviews = uow.reviews.list_for_engagement(engagement.id)
            else:
                reviews = uow.reviews.list_public_for_target(data.user_id or principal.user_id)
        return ok(reviews)
