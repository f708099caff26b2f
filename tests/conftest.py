"""Shared pytest fixtures for the marketplace engine test suite.

Every test gets its own file-backed SQLite database under ``tmp_path`` and
the full set of services wired by ``initialize_services``, with a
``FakeDrafter`` standing in for the Anthropic-backed one.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from consulthive.app import initialize_services
from consulthive.config import Settings, get_settings
from consulthive.domain.models import Offer, Principal, Request
from consulthive.domain.types import PaymentStatus, UserRole
from consulthive.drafting.models import (
    ConsultantMatch,
    DraftResult,
    EngagementContext,
    MatchCandidate,
    MatchRanking,
    RequestRefinement,
    TransferPackDraft,
)
from consulthive.operations.inputs import (
    AcceptOfferInput,
    CreateOfferInput,
    CreateRequestInput,
    RecordPaymentInput,
    RequestIdInput,
)
from consulthive.store.database import Database

WEBHOOK_SECRET = "whsec-test-secret"


class FakeDrafter:
    """Drafter returning canned results and recording what it was asked."""

    def __init__(self) -> None:
        self.refinement: DraftResult[RequestRefinement] = DraftResult.success(
            RequestRefinement(
                summary="Move the billing service from MySQL to Postgres without downtime.",
                constraints="No downtime during business hours",
                desired_outcome="A tested migration runbook",
                suggested_duration=90,
                suggested_skills=["Postgres", "Data Migration"],
            )
        )
        self.ranking: DraftResult[MatchRanking] | None = None
        self.pack: DraftResult[TransferPackDraft] = DraftResult.success(
            TransferPackDraft(
                summary="We planned the billing migration in three phases.",
                key_decisions="- Use logical replication\n- Cut over on a Sunday",
                runbook="1. Enable replication\n2. Verify row counts\n3. Switch DSN",
                next_steps="Schedule the dry run",
                internalization_checklist="- [ ] Team can run the cut-over alone",
            )
        )
        self.calls: list[str] = []
        self.last_candidates: list[MatchCandidate] = []
        self.last_context: EngagementContext | None = None

    def refine_request(self, request: Request) -> DraftResult[RequestRefinement]:
        self.calls.append("refine_request")
        return self.refinement

    def rank_matches(
        self, request: Request, candidates: list[MatchCandidate], limit: int
    ) -> DraftResult[MatchRanking]:
        self.calls.append("rank_matches")
        self.last_candidates = candidates
        if self.ranking is not None:
            return self.ranking
        matches = [
            ConsultantMatch(
                consultant_id=c.profile_id,
                consultant_name=c.name,
                score=90 - i,
                reason="Skills overlap",
                skill_overlap=c.skills,
            )
            for i, c in enumerate(candidates[:limit])
        ]
        return DraftResult.success(MatchRanking(matches=matches, recommendations="Pick the first"))

    def draft_transfer_pack(self, context: EngagementContext) -> DraftResult[TransferPackDraft]:
        self.calls.append("draft_transfer_pack")
        self.last_context = context
        return self.pack


# ---------------------------------------------------------------------------
# Settings, database and services
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Any:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        database_path=tmp_path / "consulthive.db",
        anthropic_api_key="",
        payment_webhook_secret=WEBHOOK_SECRET,
        default_currency="EUR",
    )


@pytest.fixture
def drafter() -> FakeDrafter:
    return FakeDrafter()


@pytest.fixture
def services(settings: Settings, drafter: FakeDrafter) -> dict[str, Any]:
    return initialize_services(settings, drafter=drafter)


@pytest.fixture
def database(services: dict[str, Any]) -> Database:
    return services["database"]


# ---------------------------------------------------------------------------
# Seeded users
# ---------------------------------------------------------------------------


@pytest.fixture
def client(database: Database) -> Principal:
    """A client who posts requests."""
    with database.transaction() as uow:
        user = uow.users.insert(
            "clara@example.com", role=UserRole.CLIENT, first_name="Clara", last_name="Client"
        )
    return Principal(user_id=user.id, role=user.role)


@pytest.fixture
def consultant(database: Database) -> Principal:
    """A consultant with a directory-listed profile (python, postgres; 120/h)."""
    with database.transaction() as uow:
        user = uow.users.insert(
            "conor@example.com", role=UserRole.CONSULTANT, first_name="Conor", last_name="Sult"
        )
        tags = uow.skills.upsert_many(["Python", "Postgres"])
        uow.profiles.insert(
            user.id,
            hourly_rate=Decimal("120"),
            currency="EUR",
            headline="Database migrations",
            skill_tags=tags,
        )
    return Principal(user_id=user.id, role=user.role)


@pytest.fixture
def second_consultant(database: Database) -> Principal:
    """Another listed consultant (postgres; 90/h)."""
    with database.transaction() as uow:
        user = uow.users.insert(
            "dana@example.com", role=UserRole.CONSULTANT, first_name="Dana", last_name="Data"
        )
        tags = uow.skills.upsert_many(["postgres"])
        uow.profiles.insert(user.id, hourly_rate=Decimal("90"), currency="EUR", skill_tags=tags)
    return Principal(user_id=user.id, role=user.role)


@pytest.fixture
def outsider(database: Database) -> Principal:
    """A client unrelated to any fixture request."""
    with database.transaction() as uow:
        user = uow.users.insert("otto@example.com", role=UserRole.CLIENT)
    return Principal(user_id=user.id, role=user.role)


@pytest.fixture
def admin(database: Database) -> Principal:
    with database.transaction() as uow:
        user = uow.users.insert("ada@example.com", role=UserRole.ADMIN, first_name="Ada")
    return Principal(user_id=user.id, role=user.role)


# ---------------------------------------------------------------------------
# Lifecycle shortcuts
# ---------------------------------------------------------------------------


@pytest.fixture
def published_request(services: dict[str, Any], client: Principal) -> Request:
    """A public, PUBLISHED request needing python and postgres, budget 150."""
    created = services["requests"].create(
        client,
        CreateRequestInput(
            title="Billing database migration",
            raw_description="We need to move our billing database to Postgres.",
            budget=Decimal("150"),
            skills=["python", "postgres"],
        ),
    )
    assert created.success, created
    published = services["requests"].publish(client, RequestIdInput(request_id=created.data.id))
    assert published.success, published
    return published.data


@pytest.fixture
def pending_offer(
    services: dict[str, Any], consultant: Principal, published_request: Request
) -> Offer:
    result = services["offers"].create(
        consultant,
        CreateOfferInput(request_id=published_request.id, message="Happy to help"),
    )
    assert result.success, result
    return result.data


@pytest.fixture
def booked(
    services: dict[str, Any], client: Principal, pending_offer: Offer
) -> dict[str, Any]:
    """Accept the pending offer; returns the offer, booking and engagement."""
    result = services["offers"].accept(client, AcceptOfferInput(offer_id=pending_offer.id))
    assert result.success, result
    return result.data


@pytest.fixture
def paid(services: dict[str, Any], admin: Principal, booked: dict[str, Any]) -> dict[str, Any]:
    """The booked engagement with its payment SUCCEEDED (workspace unlocked)."""
    result = services["payments"].record_status(
        admin,
        RecordPaymentInput(
            booking_id=booked["booking"].id,
            status=PaymentStatus.SUCCEEDED,
            external_reference="pi_123",
            amount=Decimal("180"),
        ),
    )
    assert result.success, result
    return booked
