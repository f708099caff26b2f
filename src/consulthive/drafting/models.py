"""Pydantic models defining structured I/O contracts for text generation.

Output models are passed to ``client.messages.parse(output_format=...)`` so
the Anthropic API returns schema-compliant content.  Context models carry
what the marketplace hands to the drafter.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class DraftResult(BaseModel, Generic[T]):
    """Outcome of a text-generation call: a value or an error, never both."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> DraftResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> DraftResult[T]:
        return cls(ok=False, error=error)


# ---------------------------------------------------------------------------
# Structured outputs
# ---------------------------------------------------------------------------


class RequestRefinement(BaseModel):
    """Structured scope extracted from a client's raw problem description."""

    summary: str = Field(description="Clear 2-3 sentence summary of the core problem")
    constraints: str | None = Field(
        default=None, description="Technical, budget, timeline or team constraints"
    )
    desired_outcome: str | None = Field(
        default=None, description="What a successful consultation delivers"
    )
    suggested_duration: int | None = Field(
        default=None,
        description="Suggested session length in minutes: 30, 60 or 90",
        gt=0,
    )
    suggested_skills: list[str] = Field(
        default_factory=list, description="Skill names relevant to the request"
    )
    sensitive_data_warning: bool = Field(
        default=False,
        description="True if the description mentions PII, credentials or proprietary data",
    )
    clarifying_questions: list[str] = Field(default_factory=list)


class ConsultantMatch(BaseModel):
    """One ranked candidate with the reasoning behind its score."""

    consultant_id: str = Field(description="The candidate's profile id, copied verbatim")
    consultant_name: str
    score: int = Field(description="Match quality from 0 to 100", ge=0, le=100)
    reason: str = Field(description="Why this consultant fits the request")
    skill_overlap: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)


class MatchRanking(BaseModel):
    matches: list[ConsultantMatch] = Field(default_factory=list)
    recommendations: str | None = Field(
        default=None, description="General advice for the client"
    )


class TransferPackDraft(BaseModel):
    """The five prose sections of a knowledge-transfer pack."""

    summary: str = Field(description="Problem, approach and outcome in 2-3 paragraphs")
    key_decisions: str = Field(description="Bullet list of decisions with their rationale")
    runbook: str = Field(description="Step-by-step procedures the client can follow")
    next_steps: str = Field(description="Prioritized immediate, short and long-term actions")
    internalization_checklist: str = Field(
        description="Markdown checklist verifying the client's understanding"
    )


# ---------------------------------------------------------------------------
# Drafting context
# ---------------------------------------------------------------------------


class MatchCandidate(BaseModel):
    profile_id: str
    name: str
    headline: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)
    hourly_rate: str
    currency: str


class EngagementContext(BaseModel):
    """Everything the transfer-pack drafter may read about an engagement.

    Private notes never reach this model.
    """

    request_title: str | None = None
    request_description: str | None = None
    messages: list[str] = Field(default_factory=list)
    notes: list[tuple[str | None, str]] = Field(default_factory=list)
    checklist: list[tuple[str, bool]] = Field(default_factory=list)
