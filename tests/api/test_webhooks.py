"""Tests for the signed payment webhook."""

from __future__ import annotations

import json
from typing import Any

from fastapi.testclient import TestClient
from pydantic import SecretStr

from consulthive.api.webhooks import sign_payload, verify_signature
from consulthive.app import create_app
from consulthive.config import Settings
from consulthive.domain.types import BookingStatus, PaymentStatus
from consulthive.store.database import Database


def _post(
    http: TestClient, settings: Settings, payload: Any, *, signature: str | None = None
) -> Any:
    body = json.dumps(payload).encode()
    if signature is None:
        signature = sign_payload(body, settings.payment_webhook_secret.get_secret_value())
    return http.post(
        "/webhooks/payments",
        content=body,
        headers={"Content-Type": "application/json", "X-Signature": signature},
    )


class TestVerifySignature:
    def test_round_trip(self) -> None:
        body = b'{"bookingId": "b"}'
        assert verify_signature(body, sign_payload(body, "s3cret"), "s3cret")

    def test_tampered_body(self) -> None:
        signature = sign_payload(b'{"amount": "1"}', "s3cret")
        assert not verify_signature(b'{"amount": "9"}', signature, "s3cret")


class TestPaymentWebhook:
    def test_success_unlocks_workspace(
        self,
        http: TestClient,
        settings: Settings,
        booked: dict[str, Any],
        database: Database,
    ) -> None:
        resp = _post(
            http,
            settings,
            {
                "bookingId": booked["booking"].id,
                "status": "SUCCEEDED",
                "externalReference": "pi_777",
                "amount": "180.00",
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
        with database.transaction(immediate=False) as uow:
            booking = uow.bookings.get(booked["booking"].id)
        assert booking.payment.status == PaymentStatus.SUCCEEDED
        assert booking.payment.external_reference == "pi_777"
        assert booking.status == BookingStatus.CONFIRMED

    def test_missing_signature(self, http: TestClient, booked: dict[str, Any]) -> None:
        resp = http.post(
            "/webhooks/payments",
            json={"bookingId": booked["booking"].id, "status": "SUCCEEDED"},
        )
        assert resp.status_code == 401

    def test_bad_signature(
        self, http: TestClient, settings: Settings, booked: dict[str, Any], database: Database
    ) -> None:
        resp = _post(
            http,
            settings,
            {"bookingId": booked["booking"].id, "status": "SUCCEEDED"},
            signature="0" * 64,
        )
        assert resp.status_code == 401
        with database.transaction(immediate=False) as uow:
            assert uow.bookings.get(booked["booking"].id).payment is None

    def test_malformed_payload(self, http: TestClient, settings: Settings) -> None:
        resp = _post(http, settings, {"bookingId": "b", "status": "PAID_IN_FULL"})
        assert resp.status_code == 422

    def test_float_amount_rejected(
        self, http: TestClient, settings: Settings, booked: dict[str, Any]
    ) -> None:
        resp = _post(
            http,
            settings,
            {"bookingId": booked["booking"].id, "status": "SUCCEEDED", "amount": 10.5},
        )
        assert resp.status_code == 422

    def test_unknown_booking(self, http: TestClient, settings: Settings) -> None:
        resp = _post(http, settings, {"bookingId": "nope", "status": "FAILED"})
        assert resp.status_code == 404

    def test_unconfigured_secret(self, settings: Settings, services: dict[str, Any]) -> None:
        unconfigured = settings.model_copy(update={"payment_webhook_secret": SecretStr("")})
        http = TestClient(create_app(unconfigured, services))
        resp = http.post("/webhooks/payments", content=b"{}", headers={"X-Signature": "x"})
        assert resp.status_code == 500
