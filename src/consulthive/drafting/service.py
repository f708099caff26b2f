"""Text-generation service used by the lifecycle engine.

The engine depends only on the :class:`Drafter` protocol.  Every method
returns a :class:`DraftResult`; implementations never raise into the core,
so a failed generation can be reported as ``AI_ERROR`` without touching
stored state.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar

import anthropic
import structlog
from anthropic import Anthropic
from pydantic import BaseModel

from consulthive.domain.errors import DraftingError
from consulthive.domain.models import Request
from consulthive.drafting.client import DRAFTING_MODEL, MAX_CONTEXT_MESSAGES
from consulthive.drafting.models import (
    DraftResult,
    EngagementContext,
    MatchCandidate,
    MatchRanking,
    RequestRefinement,
    TransferPackDraft,
)
from consulthive.drafting.prompts import (
    MATCH_SYSTEM_PROMPT,
    MATCH_USER_PROMPT,
    REFINE_REQUEST_SYSTEM_PROMPT,
    REFINE_REQUEST_USER_PROMPT,
    TRANSFER_PACK_SYSTEM_PROMPT,
    TRANSFER_PACK_USER_PROMPT,
)
from consulthive.observability.metrics import DRAFTING_FAILURES
from consulthive.resilience.retry import resilient_api_call

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

# Transient Anthropic failures worth retrying; APITimeoutError is an APIConnectionError
TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class Drafter(Protocol):
    """The collaborator interface the services call."""

    def refine_request(self, request: Request) -> DraftResult[RequestRefinement]: ...

    def rank_matches(
        self, request: Request, candidates: list[MatchCandidate], limit: int
    ) -> DraftResult[MatchRanking]: ...

    def draft_transfer_pack(self, context: EngagementContext) -> DraftResult[TransferPackDraft]: ...


class UnavailableDrafter:
    """Drafter used when no Anthropic API key is configured."""

    def _failure(self, kind: str) -> DraftResult:
        DRAFTING_FAILURES.labels(kind=kind).inc()
        return DraftResult.failure("Text generation is not configured")

    def refine_request(self, request: Request) -> DraftResult[RequestRefinement]:
        return self._failure("refine_request")

    def rank_matches(
        self, request: Request, candidates: list[MatchCandidate], limit: int
    ) -> DraftResult[MatchRanking]:
        return self._failure("rank_matches")

    def draft_transfer_pack(self, context: EngagementContext) -> DraftResult[TransferPackDraft]:
        return self._failure("draft_transfer_pack")


def format_engagement_context(context: EngagementContext) -> dict[str, str]:
    """Render engagement context into the transfer-pack prompt sections."""
    messages = "\n---\n".join(context.messages[-MAX_CONTEXT_MESSAGES:])
    notes = "\n\n".join(
        f"## {title}\n{content}" if title else content for title, content in context.notes
    )
    checklist = "\n".join(
        f"- [{'x' if done else ' '}] {text}" for text, done in context.checklist
    )
    return {
        "title": context.request_title or "Unknown",
        "description": context.request_description or "Not available",
        "messages": messages or "No messages recorded",
        "notes": notes or "No notes recorded",
        "checklist": checklist or "No checklist items",
    }


def format_candidates(candidates: list[MatchCandidate]) -> str:
    lines = []
    for c in candidates:
        lines.append(
            f"- consultant_id={c.profile_id} | name={c.name} | "
            f"rate={c.hourly_rate} {c.currency}/h | skills={', '.join(c.skills) or 'none'}\n"
            f"  headline: {c.headline or '-'}\n"
            f"  bio: {c.bio or '-'}"
        )
    return "\n".join(lines)


class AnthropicDrafter:
    """Drafter backed by Claude structured outputs.

    Each call goes through :func:`resilient_api_call`, so transient API
    errors are retried with backoff; whatever still fails is logged,
    counted and returned as ``DraftResult.failure``.

    Args:
        client: An ``anthropic.Anthropic`` instance (or compatible mock).
        model: The Anthropic model ID to use.
        max_attempts: Attempts per call, including the first.
    """

    def __init__(
        self,
        client: Anthropic,
        *,
        model: str = DRAFTING_MODEL,
        max_attempts: int = 3,
    ) -> None:
        self._client = client
        self._model = model
        self._max_attempts = max_attempts

    def _parse(
        self,
        kind: str,
        output_format: type[M],
        *,
        system: str,
        user_text: str,
        max_tokens: int,
    ) -> DraftResult[M]:
        @resilient_api_call(
            f"anthropic.{kind}", attempts=self._max_attempts, retry_on=TRANSIENT_ERRORS
        )
        def call() -> Any:
            return self._client.messages.parse(
                model=self._model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": user_text}],
                output_format=output_format,
            )

        try:
            parsed = call().parsed_output
            if parsed is None:
                msg = f"{kind} returned no structured output"
                raise DraftingError(msg)
        except Exception as exc:
            logger.error("Drafting call failed", kind=kind, error=str(exc))
            DRAFTING_FAILURES.labels(kind=kind).inc()
            return DraftResult.failure(f"{kind} failed")
        return DraftResult.success(parsed)

    def refine_request(self, request: Request) -> DraftResult[RequestRefinement]:
        """Turn a request's raw description into a structured scope."""
        constraints_section = f"\nConstraints: {request.constraints}" if request.constraints else ""
        return self._parse(
            "refine_request",
            RequestRefinement,
            system=REFINE_REQUEST_SYSTEM_PROMPT,
            user_text=REFINE_REQUEST_USER_PROMPT.format(
                raw_description=request.raw_description,
                constraints_section=constraints_section,
            ),
            max_tokens=1500,
        )

    def rank_matches(
        self, request: Request, candidates: list[MatchCandidate], limit: int
    ) -> DraftResult[MatchRanking]:
        """Score candidates against a request and explain each match.

        Matches naming a consultant outside *candidates* are dropped and the
        ranking is cut to *limit*, so callers can trust every returned id.
        """
        budget = f"{request.budget} {request.currency}/h" if request.budget is not None else "none"
        result = self._parse(
            "rank_matches",
            MatchRanking,
            system=MATCH_SYSTEM_PROMPT.format(limit=limit),
            user_text=MATCH_USER_PROMPT.format(
                title=request.title,
                summary=request.refined_summary or request.raw_description,
                budget=budget,
                skills=", ".join(request.required_skills) or "none specified",
                candidates=format_candidates(candidates),
            ),
            max_tokens=2000,
        )
        if not result.ok or result.value is None:
            return result

        known = {c.profile_id for c in candidates}
        matches = [m for m in result.value.matches if m.consultant_id in known]
        matches.sort(key=lambda m: m.score, reverse=True)
        ranking = result.value.model_copy(update={"matches": matches[:limit]})
        return DraftResult.success(ranking)

    def draft_transfer_pack(self, context: EngagementContext) -> DraftResult[TransferPackDraft]:
        """Draft the five transfer-pack sections from the engagement record."""
        return self._parse(
            "draft_transfer_pack",
            TransferPackDraft,
            system=TRANSFER_PACK_SYSTEM_PROMPT,
            user_text=TRANSFER_PACK_USER_PROMPT.format(**format_engagement_context(context)),
            max_tokens=3000,
        )
