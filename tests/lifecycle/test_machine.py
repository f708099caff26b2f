"""Tests for the lifecycle machines: valid transitions, terminal states, events."""

import pytest

from consulthive.domain.errors import InvalidTransitionError
from consulthive.domain.types import (
    BookingStatus,
    EngagementStatus,
    OfferStatus,
    RequestStatus,
)
from consulthive.lifecycle import (
    BOOKING_MACHINE,
    ENGAGEMENT_MACHINE,
    OFFER_MACHINE,
    REQUEST_MACHINE,
    EngagementEvent,
    OfferEvent,
    RequestEvent,
)

# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------
REQUEST_PATHS: list[tuple[RequestStatus, str, RequestStatus]] = [
    (RequestStatus.DRAFT, "publish", RequestStatus.PUBLISHED),
    (RequestStatus.PUBLISHED, "unpublish", RequestStatus.DRAFT),
    (RequestStatus.PUBLISHED, "book", RequestStatus.BOOKED),
    (RequestStatus.MATCHING, "book", RequestStatus.BOOKED),
    (RequestStatus.BOOKED, "start", RequestStatus.IN_PROGRESS),
    (RequestStatus.BOOKED, "complete", RequestStatus.COMPLETED),
    (RequestStatus.IN_PROGRESS, "complete", RequestStatus.COMPLETED),
    (RequestStatus.DRAFT, "cancel", RequestStatus.CANCELLED),
    (RequestStatus.IN_PROGRESS, "cancel", RequestStatus.CANCELLED),
]


class TestRequestMachine:
    @pytest.mark.parametrize(
        ("from_state", "event", "to_state"),
        REQUEST_PATHS,
        ids=[f"{s.value}+{e}->{t.value}" for s, e, t in REQUEST_PATHS],
    )
    def test_valid_transition(
        self, from_state: RequestStatus, event: str, to_state: RequestStatus
    ) -> None:
        assert REQUEST_MACHINE.next_state(from_state, event) == to_state

    @pytest.mark.parametrize("state", [RequestStatus.COMPLETED, RequestStatus.CANCELLED])
    @pytest.mark.parametrize("event", [e.value for e in RequestEvent])
    def test_terminal_states_reject_everything(self, state: RequestStatus, event: str) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            REQUEST_MACHINE.next_state(state, event)
        assert exc_info.value.entity == "Request"
        assert exc_info.value.current_state == state

    def test_draft_cannot_be_booked(self) -> None:
        assert not REQUEST_MACHINE.can_apply(RequestStatus.DRAFT, RequestEvent.BOOK)
        with pytest.raises(InvalidTransitionError):
            REQUEST_MACHINE.next_state(RequestStatus.DRAFT, RequestEvent.BOOK)

    def test_booked_request_cannot_be_booked_again(self) -> None:
        assert not REQUEST_MACHINE.can_apply(RequestStatus.BOOKED, RequestEvent.BOOK)

    def test_valid_events_sorted(self) -> None:
        assert REQUEST_MACHINE.get_valid_events(RequestStatus.PUBLISHED) == [
            "book",
            "cancel",
            "start_matching",
            "unpublish",
        ]

    def test_valid_events_empty_for_terminal(self) -> None:
        assert REQUEST_MACHINE.get_valid_events(RequestStatus.CANCELLED) == []


# ---------------------------------------------------------------------------
# Offer, booking, engagement
# ---------------------------------------------------------------------------


class TestOfferMachine:
    @pytest.mark.parametrize(
        ("event", "expected"),
        [
            (OfferEvent.ACCEPT, OfferStatus.ACCEPTED),
            (OfferEvent.DECLINE, OfferStatus.DECLINED),
            (OfferEvent.WITHDRAW, OfferStatus.WITHDRAWN),
        ],
    )
    def test_pending_settles(self, event: OfferEvent, expected: OfferStatus) -> None:
        assert OFFER_MACHINE.next_state(OfferStatus.PENDING, event) == expected

    @pytest.mark.parametrize(
        "state", [OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.WITHDRAWN]
    )
    def test_settled_offers_are_terminal(self, state: OfferStatus) -> None:
        assert OFFER_MACHINE.is_terminal(state)
        with pytest.raises(InvalidTransitionError):
            OFFER_MACHINE.next_state(state, OfferEvent.ACCEPT)


class TestBookingMachine:
    def test_confirm_then_complete(self) -> None:
        confirmed = BOOKING_MACHINE.next_state(BookingStatus.PENDING, "confirm")
        assert confirmed == BookingStatus.CONFIRMED
        assert BOOKING_MACHINE.next_state(confirmed, "complete") == BookingStatus.COMPLETED

    def test_confirmed_cannot_confirm_again(self) -> None:
        assert not BOOKING_MACHINE.can_apply(BookingStatus.CONFIRMED, "confirm")


class TestEngagementMachine:
    def test_pause_and_resume(self) -> None:
        paused = ENGAGEMENT_MACHINE.next_state(EngagementStatus.ACTIVE, EngagementEvent.PAUSE)
        assert paused == EngagementStatus.PAUSED
        resumed = ENGAGEMENT_MACHINE.next_state(paused, EngagementEvent.RESUME)
        assert resumed == EngagementStatus.ACTIVE

    @pytest.mark.parametrize(
        "state",
        [EngagementStatus.ACTIVE, EngagementStatus.PAUSED, EngagementStatus.TRANSFERRED],
    )
    def test_complete_allowed_from_open_and_transferred(self, state: EngagementStatus) -> None:
        assert (
            ENGAGEMENT_MACHINE.next_state(state, EngagementEvent.COMPLETE)
            == EngagementStatus.COMPLETED
        )

    def test_transferred_cannot_pause(self) -> None:
        with pytest.raises(InvalidTransitionError):
            ENGAGEMENT_MACHINE.next_state(EngagementStatus.TRANSFERRED, EngagementEvent.PAUSE)

    def test_completed_is_terminal(self) -> None:
        assert ENGAGEMENT_MACHINE.get_valid_events(EngagementStatus.COMPLETED) == []
