"""Tests for ReviewService."""

from __future__ import annotations

from typing import Any

import pytest

from consulthive.domain.models import Principal
from consulthive.domain.types import ReviewType
from consulthive.operations.inputs import CreateReviewInput, EngagementIdInput, ListReviewsInput
from consulthive.operations.results import ErrorCode


@pytest.fixture
def transferred(services: dict[str, Any], client: Principal, paid: dict[str, Any]) -> str:
    """Engagement id of a paid engagement whose transfer pack is finalized."""
    eid = paid["engagement"].id
    services["transfer_packs"].generate(client, EngagementIdInput(engagement_id=eid))
    assert services["transfer_packs"].finalize(
        client, EngagementIdInput(engagement_id=eid)
    ).success
    return eid


def _review(services: dict[str, Any], principal: Principal, eid: str, **kw: Any) -> Any:
    data = {"engagement_id": eid, "rating": 5}
    data.update(kw)
    return services["reviews"].create(principal, CreateReviewInput(**data))


class TestCreate:
    def test_active_engagement_not_reviewable(
        self, services: dict[str, Any], client: Principal, paid: dict[str, Any]
    ) -> None:
        result = _review(services, client, paid["engagement"].id)
        assert result.code == ErrorCode.INVALID_STATUS

    def test_direction_follows_author(
        self,
        services: dict[str, Any],
        client: Principal,
        consultant: Principal,
        transferred: str,
    ) -> None:
        by_client = _review(services, client, transferred, comment="Great work").data
        by_consultant = _review(services, consultant, transferred, rating=4).data
        assert by_client.type == ReviewType.CLIENT_TO_CONSULTANT
        assert by_client.target_id == consultant.user_id
        assert by_consultant.type == ReviewType.CONSULTANT_TO_CLIENT
        assert by_consultant.target_id == client.user_id

    def test_one_review_per_direction(
        self, services: dict[str, Any], client: Principal, transferred: str
    ) -> None:
        _review(services, client, transferred)
        assert _review(services, client, transferred).code == ErrorCode.ALREADY_EXISTS

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(
        self, services: dict[str, Any], client: Principal, transferred: str, rating: int
    ) -> None:
        assert _review(services, client, transferred, rating=rating).code == (
            ErrorCode.INVALID_INPUT
        )

    def test_outsider_forbidden(
        self, services: dict[str, Any], outsider: Principal, transferred: str
    ) -> None:
        assert _review(services, outsider, transferred).code == ErrorCode.FORBIDDEN


class TestList:
    def test_public_reviews_of_user(
        self,
        services: dict[str, Any],
        client: Principal,
        consultant: Principal,
        outsider: Principal,
        transferred: str,
    ) -> None:
        _review(services, client, transferred, comment="Public")
        _review(services, consultant, transferred, is_public=False)

        about_consultant = services["reviews"].list(
            outsider, ListReviewsInput(user_id=consultant.user_id)
        ).data
        assert [r.comment for r in about_consultant] == ["Public"]
        # The client's only review about them is private
        assert services["reviews"].list(client, ListReviewsInput()).data == []

    def test_engagement_reviews_for_participants(
        self,
        services: dict[str, Any],
        client: Principal,
        consultant: Principal,
        outsider: Principal,
        transferred: str,
    ) -> None:
        _review(services, client, transferred)
        _review(services, consultant, transferred, is_public=False)
        both = services["reviews"].list(
            client, ListReviewsInput(engagement_id=transferred)
        ).data
        assert len(both) == 2
        denied = services["reviews"].list(outsider, ListReviewsInput(engagement_id=transferred))
        assert denied.code == ErrorCode.FORBIDDEN
