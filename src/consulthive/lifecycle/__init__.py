"""Lifecycle state machines with transition validation."""

from consulthive.lifecycle.machine import (
    BOOKING_MACHINE,
    ENGAGEMENT_MACHINE,
    OFFER_MACHINE,
    REQUEST_MACHINE,
    LifecycleMachine,
)
from consulthive.lifecycle.transitions import (
    BookingEvent,
    EngagementEvent,
    OfferEvent,
    RequestEvent,
)

__all__ = [
    "BOOKING_MACHINE",
    "ENGAGEMENT_MACHINE",
    "OFFER_MACHINE",
    "REQUEST_MACHINE",
    "BookingEvent",
    "EngagementEvent",
    "LifecycleMachine",
    "OfferEvent",
    "RequestEvent",
]
