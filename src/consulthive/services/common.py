"""Helpers shared by the lifecycle services."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from consulthive.access.guard import AccessClass, decide
from consulthive.config import Settings
from consulthive.domain.errors import InvalidTransitionError
from consulthive.domain.models import Booking, Engagement, Principal
from consulthive.domain.types import WORKSPACE_OPEN_STATES
from consulthive.operations.inputs import PageInput
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, fail
from consulthive.store.database import UnitOfWork

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., OperationResult[Any]])


def service_operation(func: F) -> F:
    """Turn domain exceptions raised by a service method into failed results.

    ``OperationError`` carries its own code; an ``InvalidTransitionError``
    from a lifecycle machine becomes ``INVALID_STATUS``.  Anything else
    propagates to the catalogue.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> OperationResult[Any]:
        try:
            return func(*args, **kwargs)
        except OperationError as exc:
            return fail(exc.code, exc.message)
        except InvalidTransitionError as exc:
            logger.info(
                "Transition rejected",
                entity=exc.entity,
                state=exc.current_state,
                transition_event=exc.event,
            )
            return fail(ErrorCode.INVALID_STATUS)

    return wrapper  # type: ignore[return-value]


def ensure_allowed(
    principal: Principal | None,
    access: AccessClass,
    *,
    owner_id: str | None = None,
    participant_ids: tuple[str, ...] = (),
    admin_override: bool = False,
) -> None:
    """Raise ``OperationError`` unless the guard allows *principal*."""
    denied = decide(
        principal,
        access,
        owner_id=owner_id,
        participant_ids=participant_ids,
        admin_override=admin_override,
    )
    if denied is not None:
        raise OperationError(denied)


def page_window(data: PageInput, settings: Settings) -> tuple[int, int]:
    """Return ``(limit, offset)`` for a page request, capped by settings."""
    limit = min(data.limit or settings.default_page_size, settings.max_page_size)
    return limit, (data.page - 1) * limit


def load_engagement(
    uow: UnitOfWork, engagement_id: str, principal: Principal | None
) -> tuple[Engagement, Booking]:
    """Load an engagement and its booking, checking the caller participates.

    Raises:
        OperationError: NOT_FOUND when either record is missing, FORBIDDEN
            when the caller is neither the client nor the consultant.
    """
    engagement = uow.engagements.get(engagement_id)
    if engagement is None:
        raise OperationError(ErrorCode.NOT_FOUND, "Engagement not found")
    booking = uow.bookings.get(engagement.booking_id)
    if booking is None:
        raise OperationError(ErrorCode.NOT_FOUND, "Booking not found")
    ensure_allowed(principal, AccessClass.PARTICIPANT, participant_ids=booking.participant_ids)
    return engagement, booking


def ensure_unlocked(booking: Booking) -> None:
    """Reject workspace writes until the booking's payment has succeeded."""
    if not booking.is_paid:
        raise OperationError(ErrorCode.PAYMENT_REQUIRED)


def ensure_workspace_writable(engagement: Engagement, booking: Booking) -> None:
    """Payment lock first, then the engagement must still be ACTIVE or PAUSED."""
    ensure_unlocked(booking)
    if engagement.status not in WORKSPACE_OPEN_STATES:
        raise OperationError(
            ErrorCode.INVALID_STATUS, f"Engagement is {engagement.status.value}"
        )
