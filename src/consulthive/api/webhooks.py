"""Signed webhook through which the checkout processor reports payment status.

The HMAC-SHA256 signature is verified against the raw body bytes before any
JSON parsing, so it matches exactly what the processor signed.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from consulthive.operations.inputs import RecordPaymentInput
from consulthive.operations.results import ErrorCode

logger = structlog.get_logger()

router = APIRouter()


def sign_payload(body: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA256 digest of *body* under *secret*."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Verify the HMAC-SHA256 signature of a webhook payload.

    Args:
        body: The raw request body bytes.
        signature: The hex digest from the ``X-Signature`` header.
        secret: The shared secret from ``PAYMENT_WEBHOOK_SECRET``.

    Returns:
        True if the computed signature matches the provided one.
    """
    return hmac.compare_digest(sign_payload(body, secret), signature)


@router.post("/webhooks/payments")
async def payment_webhook(request: Request) -> dict[str, str]:
    """Record a payment status pushed by the checkout processor.

    The body carries ``bookingId``, ``status`` and optionally
    ``externalReference``, ``amount`` and ``currency``.

    Raises:
        HTTPException: 500 when no secret is configured, 401 on a missing or
            invalid signature, 422 on a malformed body, 404 for an unknown
            booking.
    """
    secret = request.app.state.settings.payment_webhook_secret.get_secret_value()
    if not secret:
        logger.error("PAYMENT_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    raw_body = await request.body()

    signature = request.headers.get("X-Signature")
    if not signature:
        logger.warning("Missing X-Signature header in payment webhook")
        raise HTTPException(status_code=401, detail="Missing signature")
    if not verify_signature(raw_body, signature, secret):
        logger.warning("Invalid payment webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload: dict[str, Any] = json.loads(raw_body)
        data = RecordPaymentInput.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Malformed payment webhook body", error=str(exc))
        raise HTTPException(status_code=422, detail="Invalid payload") from exc

    payments = request.app.state.services["payments"]
    result = await asyncio.to_thread(payments.record_status, None, data)
    if not result.success:
        if result.code == ErrorCode.NOT_FOUND:
            raise HTTPException(status_code=404, detail="Booking not found")
        raise HTTPException(status_code=409, detail=result.error or "Rejected")

    logger.info("Payment webhook processed", booking_id=data.booking_id, status=data.status)
    return {"status": "ok"}
