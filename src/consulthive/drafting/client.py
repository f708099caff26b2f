"""Anthropic client factory and model defaults for text generation."""

from anthropic import Anthropic

DRAFTING_MODEL = "claude-sonnet-4-5-20250929"

# Conversation highlights beyond this many messages are dropped, oldest first
MAX_CONTEXT_MESSAGES = 50


def get_anthropic_client(api_key: str = "") -> Anthropic:
    """Create an Anthropic client.

    With no explicit key the constructor reads ``ANTHROPIC_API_KEY`` from
    the environment.

    Args:
        api_key: API key from settings; empty defers to the environment.

    Returns:
        Configured Anthropic client instance.
    """
    if api_key:
        return Anthropic(api_key=api_key)
    return Anthropic()
