"""Payment Ledger: the local copy of the checkout processor's status.

The processor itself is external.  Its status reaches the engine either
through the admin ``payment.recordStatus`` operation or the signed
``/webhooks/payments`` endpoint; both land in :meth:`PaymentService.record_status`.
"""

from __future__ import annotations

from typing import Any

import structlog

from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Principal
from consulthive.domain.types import PaymentStatus
from consulthive.lifecycle import (
    BOOKING_MACHINE,
    REQUEST_MACHINE,
    BookingEvent,
    RequestEvent,
)
from consulthive.operations.inputs import RecordPaymentInput
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, ok
from consulthive.services.common import service_operation
from consulthive.store.database import Database, UnitOfWork

logger = structlog.get_logger()


class PaymentService:
    def __init__(self, database: Database, settings: Settings) -> None:
        self._db = database
        self._settings = settings

    def _confirm_booking(self, uow: UnitOfWork, booking_id: str, request_id: str | None) -> None:
        booking = uow.bookings.get(booking_id)
        if booking is not None and BOOKING_MACHINE.can_apply(
            booking.status, BookingEvent.CONFIRM
        ):
            uow.bookings.set_status(
                booking.id, BOOKING_MACHINE.next_state(booking.status, BookingEvent.CONFIRM)
            )
        if request_id is None:
            return
        request = uow.requests.get(request_id)
        if request is not None and REQUEST_MACHINE.can_apply(request.status, RequestEvent.START):
            uow.requests.set_status(
                request.id, REQUEST_MACHINE.next_state(request.status, RequestEvent.START)
            )

    @service_operation
    def record_status(
        self, principal: Principal | None, data: RecordPaymentInput
    ) -> OperationResult[Any]:
        """Store a processor status for a booking.

        A SUCCEEDED payment lifts the workspace lock, confirms the booking
        and starts the request.  Recording the status already stored is a
        successful no-op.

        Args:
            principal: The admin recording the status, or None for the webhook.
            data: Booking id, status and optional processor details.
        """
        actor_id = principal.user_id if principal is not None else None
        currency = (data.currency or self._settings.default_currency).upper()
        with self._db.transaction() as uow:
            booking = uow.bookings.get(data.booking_id)
            if booking is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Booking not found")

            previous = booking.payment.status if booking.payment is not None else None
            if previous == data.status:
                return ok(booking.payment)

            payment = uow.payments.upsert(
                booking.id,
                status=data.status,
                currency=currency,
                external_reference=data.external_reference,
                amount=data.amount,
            )
            if data.status == PaymentStatus.SUCCEEDED:
                self._confirm_booking(uow, booking.id, booking.request_id)

            uow.audit.log_transition(
                actor_id,
                AuditAction.PAYMENT_STATUS_CHANGED,
                "Payment",
                payment.id,
                previous.value if previous is not None else "NONE",
                payment.status.value,
                booking_id=booking.id,
                external_reference=payment.external_reference,
            )

        logger.info(
            "Payment status recorded",
            booking_id=booking.id,
            status=payment.status.value,
            previous=previous.value if previous is not None else None,
        )
        return ok(payment)
