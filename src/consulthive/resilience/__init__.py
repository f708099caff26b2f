"""Retry policies for external API calls."""

from consulthive.resilience.retry import resilient_api_call

__all__ = ["resilient_api_call"]
