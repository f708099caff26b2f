"""Text generation: request refinement, match ranking and transfer packs."""

from consulthive.drafting.client import DRAFTING_MODEL, get_anthropic_client
from consulthive.drafting.models import (
    ConsultantMatch,
    DraftResult,
    EngagementContext,
    MatchCandidate,
    MatchRanking,
    RequestRefinement,
    TransferPackDraft,
)
from consulthive.drafting.service import AnthropicDrafter, Drafter, UnavailableDrafter

__all__ = [
    "DRAFTING_MODEL",
    "AnthropicDrafter",
    "ConsultantMatch",
    "DraftResult",
    "Drafter",
    "EngagementContext",
    "MatchCandidate",
    "MatchRanking",
    "RequestRefinement",
    "TransferPackDraft",
    "UnavailableDrafter",
    "get_anthropic_client",
]
