"""Domain-specific exception classes for the marketplace lifecycle engine."""

from enum import StrEnum


class MarketplaceError(Exception):
    """Base class for all domain errors in the marketplace engine."""


class InvalidTransitionError(MarketplaceError):
    """Raised when an invalid state transition is attempted.

    Attributes:
        entity: The kind of record whose state was being changed.
        current_state: The state the record was in when the transition was attempted.
        event: The event that was rejected.
    """

    def __init__(self, entity: str, current_state: StrEnum, event: str) -> None:
        self.entity = entity
        self.current_state = current_state
        self.event = event
        super().__init__(
            f"Cannot apply event '{event}' to {entity} in state '{current_state}'"
        )


class DraftingError(MarketplaceError):
    """Raised inside the drafting layer when generated text cannot be used.

    Never escapes the drafting service: it is converted into a failed
    ``DraftResult`` at the collaborator boundary.
    """
