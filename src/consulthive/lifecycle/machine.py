"""LifecycleMachine class with transition validation and valid_events."""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, TypeVar

from consulthive.domain.errors import InvalidTransitionError
from consulthive.domain.types import (
    BookingStatus,
    EngagementStatus,
    OfferStatus,
    RequestStatus,
)
from consulthive.lifecycle.transitions import (
    BOOKING_TERMINAL_STATES,
    BOOKING_TRANSITIONS,
    ENGAGEMENT_TERMINAL_STATES,
    ENGAGEMENT_TRANSITIONS,
    OFFER_TERMINAL_STATES,
    OFFER_TRANSITIONS,
    REQUEST_TERMINAL_STATES,
    REQUEST_TRANSITIONS,
)

S = TypeVar("S", bound=StrEnum)


class LifecycleMachine(Generic[S]):
    """Finite state machine governing one record type's lifecycle.

    Unlike an in-memory workflow, the current state lives in the database
    row, so the machine is stateless: callers hand it the stored state and
    an event and get back the state to persist.

    Usage::

        REQUEST_MACHINE.next_state(RequestStatus.DRAFT, "publish")
        # -> RequestStatus.PUBLISHED
        REQUEST_MACHINE.next_state(RequestStatus.COMPLETED, "cancel")
        # raises InvalidTransitionError
    """

    def __init__(
        self,
        entity: str,
        transitions: dict[tuple[S, str], S],
        terminal_states: frozenset[S],
    ) -> None:
        self._entity = entity
        self._transitions = transitions
        self._terminal_states = terminal_states

    @property
    def entity(self) -> str:
        return self._entity

    def is_terminal(self, state: S) -> bool:
        """Return True if *state* accepts no further events."""
        return state in self._terminal_states

    def can_apply(self, state: S, event: str) -> bool:
        return not self.is_terminal(state) and (state, event) in self._transitions

    def next_state(self, state: S, event: str) -> S:
        """Apply an event to a stored state and return the resulting state.

        Args:
            state: The state currently persisted for the record.
            event: The event string (e.g. ``"publish"``).

        Returns:
            The new state after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the given state, or if the state is terminal.
        """
        if not self.can_apply(state, event):
            raise InvalidTransitionError(self._entity, state, event)
        return self._transitions[(state, event)]

    def get_valid_events(self, state: S) -> list[str]:
        """Return a sorted list of events valid from *state*.

        Returns an empty list for terminal states.
        """
        if self.is_terminal(state):
            return []
        return sorted(event for s, event in self._transitions if s == state)


REQUEST_MACHINE: LifecycleMachine[RequestStatus] = LifecycleMachine(
    "Request", REQUEST_TRANSITIONS, REQUEST_TERMINAL_STATES
)
OFFER_MACHINE: LifecycleMachine[OfferStatus] = LifecycleMachine(
    "Offer", OFFER_TRANSITIONS, OFFER_TERMINAL_STATES
)
BOOKING_MACHINE: LifecycleMachine[BookingStatus] = LifecycleMachine(
    "Booking", BOOKING_TRANSITIONS, BOOKING_TERMINAL_STATES
)
ENGAGEMENT_MACHINE: LifecycleMachine[EngagementStatus] = LifecycleMachine(
    "Engagement", ENGAGEMENT_TRANSITIONS, ENGAGEMENT_TERMINAL_STATES
)
