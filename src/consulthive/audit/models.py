"""Audit trail models for tracking every irreversible marketplace transition."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class AuditAction(StrEnum):
    """Actions recorded in the audit trail."""

    REQUEST_CREATED = "REQUEST_CREATED"
    REQUEST_UPDATED = "REQUEST_UPDATED"
    REQUEST_PUBLISHED = "REQUEST_PUBLISHED"
    REQUEST_REFINED = "REQUEST_REFINED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    OFFER_CREATED = "OFFER_CREATED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_DECLINED = "OFFER_DECLINED"
    OFFER_WITHDRAWN = "OFFER_WITHDRAWN"
    ENGAGEMENT_UPDATED = "ENGAGEMENT_UPDATED"
    ENGAGEMENT_COMPLETED = "ENGAGEMENT_COMPLETED"
    MESSAGE_SENT = "MESSAGE_SENT"
    NOTE_CREATED = "NOTE_CREATED"
    NOTE_UPDATED = "NOTE_UPDATED"
    CHECKLIST_ITEM_ADDED = "CHECKLIST_ITEM_ADDED"
    CHECKLIST_ITEM_TOGGLED = "CHECKLIST_ITEM_TOGGLED"
    TRANSFER_PACK_GENERATED = "TRANSFER_PACK_GENERATED"
    TRANSFER_PACK_UPDATED = "TRANSFER_PACK_UPDATED"
    TRANSFER_PACK_FINALIZED = "TRANSFER_PACK_FINALIZED"
    PAYMENT_STATUS_CHANGED = "PAYMENT_STATUS_CHANGED"
    CONSULTANT_PROFILE_CREATED = "CONSULTANT_PROFILE_CREATED"
    CONSULTANT_PROFILE_UPDATED = "CONSULTANT_PROFILE_UPDATED"
    REVIEW_CREATED = "REVIEW_CREATED"


class AuditEntry(BaseModel):
    """A single audit trail entry waiting to be written.

    ``actor_id`` is None for entries written on behalf of an external
    system, such as the payment webhook.
    """

    actor_id: str | None = None
    action: AuditAction
    entity_type: str
    entity_id: str
    metadata: dict[str, Any] | None = None
