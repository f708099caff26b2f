"""Booking and Payment rows."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from decimal import Decimal

from consulthive.domain.models import Booking, Payment
from consulthive.domain.types import BookingStatus, PaymentStatus
from consulthive.store.rows import money_to_db, new_id, to_db_time, utcnow


class PaymentRepository:
    """The local record of the checkout processor's payment status."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_by_booking(self, booking_id: str) -> Payment | None:
        row = self._conn.execute(
            "SELECT * FROM payments WHERE booking_id = ?", (booking_id,)
        ).fetchone()
        return Payment.model_validate(dict(row)) if row is not None else None

    def upsert(
        self,
        booking_id: str,
        *,
        status: PaymentStatus,
        currency: str,
        external_reference: str | None = None,
        amount: Decimal | None = None,
    ) -> Payment:
        """Create or update the single Payment row of a Booking.

        ``external_reference`` and ``amount`` keep their stored value when
        not supplied.
        """
        now = to_db_time(utcnow())
        self._conn.execute(
            """
            INSERT INTO payments (
                id, booking_id, status, external_reference, amount, currency, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(booking_id) DO UPDATE SET
                status = excluded.status,
                external_reference = COALESCE(excluded.external_reference,
                                              payments.external_reference),
                amount = COALESCE(excluded.amount, payments.amount),
                currency = excluded.currency,
                updated_at = excluded.updated_at
            """,
            (
                new_id(),
                booking_id,
                status.value,
                external_reference,
                money_to_db(amount),
                currency,
                now,
            ),
        )
        payment = self.get_by_booking(booking_id)
        if payment is None:
            msg = f"Payment for booking {booking_id} vanished after upsert"
            raise RuntimeError(msg)
        return payment


class BookingRepository:
    """Bookings, always returned with their Payment attached."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._payments = PaymentRepository(conn)

    def _build(self, row: sqlite3.Row) -> Booking:
        data = dict(row)
        data["payment"] = self._payments.get_by_booking(data["id"])
        return Booking.model_validate(data)

    def get(self, booking_id: str) -> Booking | None:
        row = self._conn.execute("SELECT * FROM bookings WHERE id = ?", (booking_id,)).fetchone()
        return self._build(row) if row is not None else None

    def get_by_offer(self, offer_id: str) -> Booking | None:
        row = self._conn.execute(
            "SELECT * FROM bookings WHERE offer_id = ?", (offer_id,)
        ).fetchone()
        return self._build(row) if row is not None else None

    def insert(
        self,
        *,
        request_id: str | None,
        offer_id: str | None,
        client_id: str,
        consultant_id: str,
        duration: int,
        scheduled_start: datetime | None = None,
    ) -> Booking:
        """Insert a PENDING booking.

        Raises:
            sqlite3.IntegrityError: If the offer already has a booking.
        """
        booking = Booking(
            id=new_id(),
            request_id=request_id,
            offer_id=offer_id,
            client_id=client_id,
            consultant_id=consultant_id,
            scheduled_start=scheduled_start,
            duration=duration,
            status=BookingStatus.PENDING,
            created_at=utcnow(),
        )
        self._conn.execute(
            """
            INSERT INTO bookings (
                id, request_id, offer_id, client_id, consultant_id,
                scheduled_start, duration, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                booking.id,
                booking.request_id,
                booking.offer_id,
                booking.client_id,
                booking.consultant_id,
                to_db_time(booking.scheduled_start),
                booking.duration,
                booking.status.value,
                to_db_time(booking.created_at),
            ),
        )
        return booking

    def set_status(self, booking_id: str, status: BookingStatus) -> None:
        self._conn.execute(
            "UPDATE bookings SET status = ? WHERE id = ?", (status.value, booking_id)
        )
