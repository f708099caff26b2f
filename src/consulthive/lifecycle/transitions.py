"""Transition maps defining all valid (state, event) -> state mappings."""

from enum import StrEnum

from consulthive.domain.types import (
    BookingStatus,
    EngagementStatus,
    OfferStatus,
    RequestStatus,
)


class RequestEvent(StrEnum):
    """Events that can move a Request through its lifecycle."""

    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    START_MATCHING = "start_matching"
    BOOK = "book"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


class OfferEvent(StrEnum):
    """Events that settle a PENDING Offer."""

    ACCEPT = "accept"
    DECLINE = "decline"
    WITHDRAW = "withdraw"


class BookingEvent(StrEnum):
    """Events driven by payment and engagement completion."""

    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"


class EngagementEvent(StrEnum):
    """Events that change the Engagement workspace status."""

    PAUSE = "pause"
    RESUME = "resume"
    TRANSFER = "transfer"
    COMPLETE = "complete"


# Any pair not in a map is an invalid transition.
REQUEST_TRANSITIONS: dict[tuple[RequestStatus, str], RequestStatus] = {
    # From DRAFT
    (RequestStatus.DRAFT, RequestEvent.PUBLISH): RequestStatus.PUBLISHED,
    (RequestStatus.DRAFT, RequestEvent.CANCEL): RequestStatus.CANCELLED,
    # From PUBLISHED
    (RequestStatus.PUBLISHED, RequestEvent.UNPUBLISH): RequestStatus.DRAFT,
    (RequestStatus.PUBLISHED, RequestEvent.START_MATCHING): RequestStatus.MATCHING,
    (RequestStatus.PUBLISHED, RequestEvent.BOOK): RequestStatus.BOOKED,
    (RequestStatus.PUBLISHED, RequestEvent.CANCEL): RequestStatus.CANCELLED,
    # From MATCHING
    (RequestStatus.MATCHING, RequestEvent.BOOK): RequestStatus.BOOKED,
    (RequestStatus.MATCHING, RequestEvent.CANCEL): RequestStatus.CANCELLED,
    # From BOOKED
    (RequestStatus.BOOKED, RequestEvent.START): RequestStatus.IN_PROGRESS,
    (RequestStatus.BOOKED, RequestEvent.COMPLETE): RequestStatus.COMPLETED,
    (RequestStatus.BOOKED, RequestEvent.CANCEL): RequestStatus.CANCELLED,
    # From IN_PROGRESS
    (RequestStatus.IN_PROGRESS, RequestEvent.COMPLETE): RequestStatus.COMPLETED,
    (RequestStatus.IN_PROGRESS, RequestEvent.CANCEL): RequestStatus.CANCELLED,
}

OFFER_TRANSITIONS: dict[tuple[OfferStatus, str], OfferStatus] = {
    (OfferStatus.PENDING, OfferEvent.ACCEPT): OfferStatus.ACCEPTED,
    (OfferStatus.PENDING, OfferEvent.DECLINE): OfferStatus.DECLINED,
    (OfferStatus.PENDING, OfferEvent.WITHDRAW): OfferStatus.WITHDRAWN,
}

BOOKING_TRANSITIONS: dict[tuple[BookingStatus, str], BookingStatus] = {
    (BookingStatus.PENDING, BookingEvent.CONFIRM): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.PENDING, BookingEvent.CANCEL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
    (BookingStatus.CONFIRMED, BookingEvent.CANCEL): BookingStatus.CANCELLED,
}

# COMPLETE is allowed from the open states as well as TRANSFERRED; the
# finalized-pack gate in the engagement controller is what makes it reachable.
ENGAGEMENT_TRANSITIONS: dict[tuple[EngagementStatus, str], EngagementStatus] = {
    (EngagementStatus.ACTIVE, EngagementEvent.PAUSE): EngagementStatus.PAUSED,
    (EngagementStatus.ACTIVE, EngagementEvent.TRANSFER): EngagementStatus.TRANSFERRED,
    (EngagementStatus.ACTIVE, EngagementEvent.COMPLETE): EngagementStatus.COMPLETED,
    (EngagementStatus.PAUSED, EngagementEvent.RESUME): EngagementStatus.ACTIVE,
    (EngagementStatus.PAUSED, EngagementEvent.TRANSFER): EngagementStatus.TRANSFERRED,
    (EngagementStatus.PAUSED, EngagementEvent.COMPLETE): EngagementStatus.COMPLETED,
    (EngagementStatus.TRANSFERRED, EngagementEvent.COMPLETE): EngagementStatus.COMPLETED,
}

# States that reject all events -- no outgoing transitions allowed.
REQUEST_TERMINAL_STATES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.COMPLETED, RequestStatus.CANCELLED}
)
OFFER_TERMINAL_STATES: frozenset[OfferStatus] = frozenset(
    {OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.WITHDRAWN}
)
BOOKING_TERMINAL_STATES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
)
ENGAGEMENT_TERMINAL_STATES: frozenset[EngagementStatus] = frozenset(
    {EngagementStatus.COMPLETED}
)
