"""Tests for the RequestService lifecycle operations."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from consulthive.audit.store import query_audit_trail
from consulthive.domain.models import Principal, Request
from consulthive.domain.types import OfferStatus, RequestStatus, Urgency
from consulthive.drafting.models import DraftResult
from consulthive.operations.inputs import (
    AcceptOfferInput,
    CancelRequestInput,
    CreateOfferInput,
    CreateRequestInput,
    ListOffersInput,
    ListRequestsInput,
    RequestIdInput,
    UpdateRequestInput,
)
from consulthive.operations.results import ErrorCode
from consulthive.store.database import Database


def _create(services: dict[str, Any], principal: Principal, **fields: Any) -> Request:
    data = {"title": "Kubernetes audit", "raw_description": "Review our cluster setup"}
    data.update(fields)
    result = services["requests"].create(principal, CreateRequestInput(**data))
    assert result.success, result
    return result.data


# ---------------------------------------------------------------------------
# create / get / list
# ---------------------------------------------------------------------------


class TestCreate:
    def test_starts_in_draft_with_default_currency(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        request = _create(services, client, skills=["Kubernetes", "kubernetes", "Helm"])
        assert request.status == RequestStatus.DRAFT
        assert request.currency == "EUR"
        assert request.creator_id == client.user_id
        assert sorted(request.required_skills) == ["helm", "kubernetes"]

    def test_currency_uppercased(self, services: dict[str, Any], client: Principal) -> None:
        assert _create(services, client, currency="usd").currency == "USD"

    def test_blank_skill_is_invalid_input(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        result = services["requests"].create(
            client, CreateRequestInput(title="t", raw_description="d", skills=["  "])
        )
        assert result.code == ErrorCode.INVALID_INPUT

    def test_audited(
        self, services: dict[str, Any], client: Principal, database: Database
    ) -> None:
        request = _create(services, client)
        with database.transaction(immediate=False) as uow:
            (entry,) = query_audit_trail(uow.conn, entity_id=request.id)
        assert entry["action"] == "REQUEST_CREATED"
        assert entry["actor_id"] == client.user_id


class TestGet:
    def test_missing(self, services: dict[str, Any], client: Principal) -> None:
        result = services["requests"].get(client, RequestIdInput(request_id="nope"))
        assert result.code == ErrorCode.NOT_FOUND

    def test_draft_hidden_from_other_clients(
        self, services: dict[str, Any], client: Principal, outsider: Principal
    ) -> None:
        request = _create(services, client)
        result = services["requests"].get(outsider, RequestIdInput(request_id=request.id))
        assert result.code == ErrorCode.FORBIDDEN

    def test_published_visible_to_other_clients(
        self, services: dict[str, Any], outsider: Principal, published_request: Request
    ) -> None:
        result = services["requests"].get(
            outsider, RequestIdInput(request_id=published_request.id)
        )
        assert result.success
        assert result.data.id == published_request.id

    def test_consultant_sees_draft(
        self, services: dict[str, Any], client: Principal, consultant: Principal
    ) -> None:
        request = _create(services, client)
        result = services["requests"].get(consultant, RequestIdInput(request_id=request.id))
        assert result.success


class TestList:
    def test_client_lists_own_requests(
        self,
        services: dict[str, Any],
        client: Principal,
        outsider: Principal,
        published_request: Request,
    ) -> None:
        _create(services, client)
        _create(services, outsider)
        page = services["requests"].list(client, ListRequestsInput()).data
        assert page.total == 2
        assert {r.creator_id for r in page.items} == {client.user_id}

    def test_consultant_browses_published_public(
        self,
        services: dict[str, Any],
        client: Principal,
        consultant: Principal,
        published_request: Request,
    ) -> None:
        _create(services, client)
        _create(services, client, is_public=False)
        page = services["requests"].list(consultant, ListRequestsInput()).data
        assert [r.id for r in page.items] == [published_request.id]

    def test_pagination(self, services: dict[str, Any], client: Principal) -> None:
        for i in range(3):
            _create(services, client, title=f"Request {i}")
        page = services["requests"].list(client, ListRequestsInput(page=2, limit=2)).data
        assert page.total == 3
        assert len(page.items) == 1
        assert page.has_more is False

    def test_budget_and_urgency_filters(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        _create(services, client, budget=Decimal("50"))
        _create(services, client, budget=Decimal("500"), urgency=Urgency.URGENT)
        page = services["requests"].list(
            client, ListRequestsInput(min_budget="100", urgency=Urgency.URGENT)
        ).data
        assert [r.budget for r in page.items] == [Decimal("500")]


# ---------------------------------------------------------------------------
# update / publish / cancel
# ---------------------------------------------------------------------------


class TestUpdate:
    def test_patch_only_touches_supplied_fields(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        request = _create(services, client, constraints="Weekdays only")
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=request.id, title="Renamed")
        )
        assert result.data.title == "Renamed"
        assert result.data.constraints == "Weekdays only"

    def test_explicit_null_clears_field(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        request = _create(services, client, constraints="Weekdays only")
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=request.id, constraints=None)
        )
        assert result.data.constraints is None

    def test_null_title_rejected(self) -> None:
        with pytest.raises(ValueError, match="cannot be null"):
            UpdateRequestInput(request_id="r", title=None)

    def test_status_publish_via_update(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        request = _create(services, client)
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=request.id, status=RequestStatus.PUBLISHED)
        )
        assert result.data.status == RequestStatus.PUBLISHED

    def test_status_cannot_jump_to_booked(
        self, services: dict[str, Any], client: Principal
    ) -> None:
        request = _create(services, client)
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=request.id, status=RequestStatus.BOOKED)
        )
        assert result.code == ErrorCode.INVALID_STATUS

    def test_replace_skills(self, services: dict[str, Any], client: Principal) -> None:
        request = _create(services, client, skills=["go"])
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=request.id, skills=["Rust"])
        )
        assert result.data.required_skills == ["rust"]

    def test_non_owner_forbidden(
        self, services: dict[str, Any], outsider: Principal, published_request: Request
    ) -> None:
        result = services["requests"].update(
            outsider, UpdateRequestInput(request_id=published_request.id, title="Mine now")
        )
        assert result.code == ErrorCode.FORBIDDEN

    def test_booked_request_not_editable(
        self,
        services: dict[str, Any],
        client: Principal,
        published_request: Request,
        booked: dict[str, Any],
    ) -> None:
        result = services["requests"].update(
            client, UpdateRequestInput(request_id=published_request.id, title="Too late")
        )
        assert result.code == ErrorCode.INVALID_STATUS


class TestPublishAndCancel:
    def test_publish_twice_is_invalid(
        self, services: dict[str, Any], client: Principal, published_request: Request
    ) -> None:
        result = services["requests"].publish(
            client, RequestIdInput(request_id=published_request.id)
        )
        assert result.code == ErrorCode.INVALID_STATUS

    def test_cancel_records_reason(
        self,
        services: dict[str, Any],
        client: Principal,
        published_request: Request,
        database: Database,
    ) -> None:
        result = services["requests"].cancel(
            client, CancelRequestInput(request_id=published_request.id, reason="Hired in-house")
        )
        assert result.data.status == RequestStatus.CANCELLED
        with database.transaction(immediate=False) as uow:
            entries = query_audit_trail(uow.conn, action="REQUEST_CANCELLED")
        assert entries[0]["metadata"]["reason"] == "Hired in-house"

    def test_cancelled_is_terminal(
        self, services: dict[str, Any], client: Principal, published_request: Request
    ) -> None:
        services["requests"].cancel(client, CancelRequestInput(request_id=published_request.id))
        again = services["requests"].cancel(
            client, CancelRequestInput(request_id=published_request.id)
        )
        assert again.code == ErrorCode.INVALID_STATUS


# ---------------------------------------------------------------------------
# refine
# ---------------------------------------------------------------------------


class TestRefine:
    def test_stores_refinement(
        self, services: dict[str, Any], client: Principal, drafter: Any
    ) -> None:
        request = _create(services, client, skills=["mysql"])
        result = services["requests"].refine(client, RequestIdInput(request_id=request.id))
        assert result.success
        refined = result.data["request"]
        assert refined.refined_summary.startswith("Move the billing service")
        assert refined.suggested_duration == 90
        assert sorted(refined.required_skills) == ["data-migration", "postgres"]
        assert drafter.calls == ["refine_request"]

    def test_drafter_failure_is_ai_error(
        self, services: dict[str, Any], client: Principal, drafter: Any
    ) -> None:
        drafter.refinement = DraftResult.failure("model unavailable")
        request = _create(services, client)
        result = services["requests"].refine(client, RequestIdInput(request_id=request.id))
        assert result.code == ErrorCode.AI_ERROR
        unchanged = services["requests"].get(client, RequestIdInput(request_id=request.id))
        assert unchanged.data.refined_summary is None

    def test_non_owner_never_reaches_drafter(
        self,
        services: dict[str, Any],
        outsider: Principal,
        published_request: Request,
        drafter: Any,
    ) -> None:
        result = services["requests"].refine(
            outsider, RequestIdInput(request_id=published_request.id)
        )
        assert result.code == ErrorCode.FORBIDDEN
        assert drafter.calls == []


# ---------------------------------------------------------------------------
# direct booking
# ---------------------------------------------------------------------------


class TestDirectBooking:
    def test_offers_request_to_one_consultant(
        self, services: dict[str, Any], client: Principal, consultant: Principal
    ) -> None:
        request = _create(services, client, consultant_id=consultant.user_id)

        assert request.status == RequestStatus.MATCHING
        assert request.is_public is False
        offers = services["offers"].list(client, ListOffersInput(request_id=request.id)).data
        assert offers.total == 1
        assert offers.items[0].status == OfferStatus.PENDING
        assert offers.items[0].proposed_rate == Decimal("120")

    def test_accepting_direct_offer_books_request(
        self, services: dict[str, Any], client: Principal, consultant: Principal
    ) -> None:
        request = _create(services, client, consultant_id=consultant.user_id)
        offer = services["offers"].list(client, ListOffersInput(request_id=request.id)).data

        result = services["offers"].accept(client, AcceptOfferInput(offer_id=offer.items[0].id))

        assert result.success, result
        booked = services["requests"].get(client, RequestIdInput(request_id=request.id)).data
        assert booked.status == RequestStatus.BOOKED
        assert result.data["booking"].consultant_id == consultant.user_id

    def test_hidden_from_other_consultants_offers(
        self,
        services: dict[str, Any],
        client: Principal,
        consultant: Principal,
        second_consultant: Principal,
    ) -> None:
        request = _create(services, client, consultant_id=consultant.user_id)
        result = services["offers"].create(
            second_consultant, CreateOfferInput(request_id=request.id)
        )
        assert result.code == ErrorCode.INVALID_STATUS

    def test_unknown_consultant_creates_nothing(
        self, services: dict[str, Any], database: Database, client: Principal
    ) -> None:
        result = services["requests"].create(
            client,
            CreateRequestInput(title="t", raw_description="d", consultant_id="nobody"),
        )
        assert result.code == ErrorCode.NOT_FOUND
        with database.transaction(immediate=False) as uow:
            assert uow.requests.search(creator_id=client.user_id)[1] == 0

    def test_self_booking_rejected(
        self, services: dict[str, Any], consultant: Principal
    ) -> None:
        result = services["requests"].create(
            consultant,
            CreateRequestInput(title="t", raw_description="d", consultant_id=consultant.user_id),
        )
        assert result.code == ErrorCode.SELF_OFFER

    def test_matching_request_can_be_cancelled(
        self, services: dict[str, Any], client: Principal, consultant: Principal
    ) -> None:
        request = _create(services, client, consultant_id=consultant.user_id)
        result = services["requests"].cancel(client, CancelRequestInput(request_id=request.id))
        assert result.data.status == RequestStatus.CANCELLED
