"""Tests for the Anthropic-backed drafter and its fallbacks."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from consulthive.domain.models import Request
from consulthive.drafting.models import (
    ConsultantMatch,
    EngagementContext,
    MatchCandidate,
    MatchRanking,
    RequestRefinement,
    TransferPackDraft,
)
from consulthive.drafting.service import (
    AnthropicDrafter,
    UnavailableDrafter,
    format_candidates,
    format_engagement_context,
)

NOW = datetime(2026, 3, 1, tzinfo=UTC)


@pytest.fixture
def request_record() -> Request:
    return Request(
        id="req-1",
        creator_id="client",
        title="Kafka tuning",
        raw_description="Our consumers lag during peak hours.",
        constraints="No new infrastructure",
        budget=Decimal("200"),
        currency="EUR",
        required_skills=["kafka"],
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def drafter(client: MagicMock) -> AnthropicDrafter:
    return AnthropicDrafter(client, model="test-model", max_attempts=1)


def _candidate(profile_id: str) -> MatchCandidate:
    return MatchCandidate(
        profile_id=profile_id,
        name=f"Consultant {profile_id}",
        skills=["kafka"],
        hourly_rate="150",
        currency="EUR",
    )


def _match(consultant_id: str, score: int) -> ConsultantMatch:
    return ConsultantMatch(
        consultant_id=consultant_id,
        consultant_name="x",
        score=score,
        reason="fits",
    )


# ---------------------------------------------------------------------------
# AnthropicDrafter
# ---------------------------------------------------------------------------


class TestRefineRequest:
    def test_returns_parsed_output(
        self, drafter: AnthropicDrafter, client: MagicMock, request_record: Request
    ) -> None:
        refinement = RequestRefinement(summary="Consumer lag at peak", suggested_skills=["Kafka"])
        client.messages.parse.return_value.parsed_output = refinement

        result = drafter.refine_request(request_record)

        assert result.ok
        assert result.value == refinement
        kwargs = client.messages.parse.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["output_format"] is RequestRefinement
        assert "No new infrastructure" in kwargs["messages"][0]["content"]

    def test_missing_structured_output_is_failure(
        self, drafter: AnthropicDrafter, client: MagicMock, request_record: Request
    ) -> None:
        client.messages.parse.return_value.parsed_output = None
        result = drafter.refine_request(request_record)
        assert not result.ok
        assert result.error == "refine_request failed"

    def test_api_error_is_failure(
        self, drafter: AnthropicDrafter, client: MagicMock, request_record: Request
    ) -> None:
        client.messages.parse.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        result = drafter.refine_request(request_record)
        assert not result.ok
        assert client.messages.parse.call_count == 1


class TestRankMatches:
    def test_drops_unknown_ids_sorts_and_limits(
        self, drafter: AnthropicDrafter, client: MagicMock, request_record: Request
    ) -> None:
        client.messages.parse.return_value.parsed_output = MatchRanking(
            matches=[_match("p1", 60), _match("ghost", 99), _match("p2", 80), _match("p3", 70)],
            recommendations="Start with p2",
        )
        candidates = [_candidate("p1"), _candidate("p2"), _candidate("p3")]

        result = drafter.rank_matches(request_record, candidates, limit=2)

        assert [m.consultant_id for m in result.value.matches] == ["p2", "p3"]
        assert result.value.recommendations == "Start with p2"
        prompt = client.messages.parse.call_args.kwargs["messages"][0]["content"]
        assert "consultant_id=p1" in prompt
        assert "200 EUR/h" in prompt


class TestDraftTransferPack:
    def test_prompt_contains_workspace(self, drafter: AnthropicDrafter, client: MagicMock) -> None:
        client.messages.parse.return_value.parsed_output = TransferPackDraft(
            summary="s",
            key_decisions="k",
            runbook="r",
            next_steps="n",
            internalization_checklist="i",
        )
        context = EngagementContext(
            request_title="Kafka tuning",
            messages=["Raised partitions to 24"],
            checklist=[("Dashboards shared", True)],
        )

        result = drafter.draft_transfer_pack(context)

        assert result.ok
        prompt = client.messages.parse.call_args.kwargs["messages"][0]["content"]
        assert "Raised partitions to 24" in prompt
        assert "- [x] Dashboards shared" in prompt


# ---------------------------------------------------------------------------
# Formatting helpers and fallback
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_empty_context_placeholders(self) -> None:
        sections = format_engagement_context(EngagementContext())
        assert sections["title"] == "Unknown"
        assert sections["messages"] == "No messages recorded"
        assert sections["notes"] == "No notes recorded"
        assert sections["checklist"] == "No checklist items"

    def test_notes_with_and_without_title(self) -> None:
        sections = format_engagement_context(
            EngagementContext(notes=[("Plan", "Phase one"), (None, "Loose idea")])
        )
        assert sections["notes"] == "## Plan\nPhase one\n\nLoose idea"

    def test_messages_capped_to_most_recent(self) -> None:
        context = EngagementContext(messages=[f"m{i}" for i in range(60)])
        rendered = format_engagement_context(context)["messages"].split("\n---\n")
        assert len(rendered) == 50
        assert rendered[0] == "m10"

    def test_candidates(self) -> None:
        text = format_candidates([_candidate("p1")])
        assert "rate=150 EUR/h" in text
        assert "headline: -" in text


class TestUnavailableDrafter:
    def test_every_call_fails(self, request_record: Request) -> None:
        drafter = UnavailableDrafter()
        assert not drafter.refine_request(request_record).ok
        assert not drafter.rank_matches(request_record, [], 5).ok
        result = drafter.draft_transfer_pack(EngagementContext())
        assert result.error == "Text generation is not configured"
