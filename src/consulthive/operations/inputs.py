"""Strict input models for every catalogue operation.

Unknown fields are rejected and field names are accepted in either
camelCase (as sent over HTTP) or snake_case.  Patch-style inputs
distinguish "not supplied" from "explicitly null" through
``model_fields_set``: see :func:`patch_fields`.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from consulthive.domain.models import reject_float_money
from consulthive.domain.types import (
    EngagementStatus,
    OfferStatus,
    PaymentStatus,
    RequestStatus,
    Urgency,
)


class OperationInput(BaseModel):
    """Base for operation inputs: strict keys, camelCase aliases."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PatchInput(OperationInput):
    """Partial update: absent fields are untouched, null clears a field.

    Fields listed in ``non_nullable`` may be omitted but never set to null.
    ``target_fields`` names the identifying fields that are not part of
    the patch itself.
    """

    non_nullable: ClassVar[frozenset[str]] = frozenset()
    target_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_required(self) -> PatchInput:
        for name in self.non_nullable & self.model_fields_set:
            if getattr(self, name) is None:
                msg = f"{name} cannot be null"
                raise ValueError(msg)
        return self


def patch_fields(patch: PatchInput) -> dict[str, Any]:
    """Return only the fields the caller explicitly supplied."""
    supplied = patch.model_fields_set - patch.target_fields
    return {name: getattr(patch, name) for name in supplied}


class PageInput(OperationInput):
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class EmptyInput(OperationInput):
    pass


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateRequestInput(OperationInput):
    title: str = Field(min_length=1, max_length=200)
    raw_description: str = Field(min_length=1)
    constraints: str | None = None
    desired_outcome: str | None = None
    suggested_duration: int | None = Field(default=None, gt=0)
    urgency: Urgency = Urgency.NORMAL
    budget: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_public: bool = True
    skills: list[str] = Field(default_factory=list)
    # User id of a consultant to book directly instead of publishing
    consultant_id: str | None = None

    @field_validator("budget", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class RequestIdInput(OperationInput):
    request_id: str


class UpdateRequestInput(PatchInput):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"title", "raw_description", "urgency", "currency", "is_public", "status"}
    )
    target_fields: ClassVar[frozenset[str]] = frozenset({"request_id"})

    request_id: str
    title: str | None = Field(default=None, min_length=1, max_length=200)
    raw_description: str | None = Field(default=None, min_length=1)
    constraints: str | None = None
    desired_outcome: str | None = None
    suggested_duration: int | None = Field(default=None, gt=0)
    urgency: Urgency | None = None
    budget: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_public: bool | None = None
    status: RequestStatus | None = None
    skills: list[str] | None = None

    @field_validator("budget", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class ListRequestsInput(PageInput):
    status: RequestStatus | None = None
    urgency: Urgency | None = None
    min_budget: Decimal | None = None
    max_budget: Decimal | None = None

    @field_validator("min_budget", "max_budget", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class CancelRequestInput(OperationInput):
    request_id: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


class CreateOfferInput(OperationInput):
    request_id: str
    message: str | None = None
    proposed_rate: Decimal | None = Field(default=None, gt=0)

    @field_validator("proposed_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class ListOffersInput(PageInput):
    request_id: str | None = None
    status: OfferStatus | None = None


class AcceptOfferInput(OperationInput):
    offer_id: str
    scheduled_start: datetime | None = None
    duration: int | None = Field(default=None, gt=0)


class DeclineOfferInput(OperationInput):
    offer_id: str
    reason: str | None = None


class FindMatchesInput(OperationInput):
    request_id: str
    limit: int = Field(default=5, ge=1, le=20)


# ---------------------------------------------------------------------------
# Engagements
# ---------------------------------------------------------------------------


class EngagementIdInput(OperationInput):
    engagement_id: str


class ListEngagementsInput(PageInput):
    status: EngagementStatus | None = None


class UpdateEngagementInput(PatchInput):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"status"})
    target_fields: ClassVar[frozenset[str]] = frozenset({"engagement_id"})

    engagement_id: str
    agenda: str | None = None
    video_link: str | None = None
    status: EngagementStatus | None = None

    @field_validator("status")
    @classmethod
    def only_open_states(cls, v: EngagementStatus | None) -> EngagementStatus | None:
        if v is not None and v not in (EngagementStatus.ACTIVE, EngagementStatus.PAUSED):
            msg = "status can only be set to ACTIVE or PAUSED"
            raise ValueError(msg)
        return v


class SendMessageInput(OperationInput):
    engagement_id: str
    content: str = Field(min_length=1, max_length=10_000)


class ListMessagesInput(PageInput):
    engagement_id: str


class CreateNoteInput(OperationInput):
    engagement_id: str
    title: str | None = None
    content: str = Field(min_length=1)
    is_private: bool = False


class UpdateNoteInput(PatchInput):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"content", "is_private"})
    target_fields: ClassVar[frozenset[str]] = frozenset({"note_id"})

    note_id: str
    title: str | None = None
    content: str | None = Field(default=None, min_length=1)
    is_private: bool | None = None


class AddChecklistItemInput(OperationInput):
    engagement_id: str
    text: str = Field(min_length=1, max_length=500)


class ToggleChecklistItemInput(OperationInput):
    item_id: str


# ---------------------------------------------------------------------------
# Transfer packs
# ---------------------------------------------------------------------------


class UpdateTransferPackInput(PatchInput):
    target_fields: ClassVar[frozenset[str]] = frozenset({"engagement_id"})

    engagement_id: str
    summary: str | None = None
    key_decisions: str | None = None
    runbook: str | None = None
    next_steps: str | None = None
    internalization_checklist: str | None = None


# ---------------------------------------------------------------------------
# Payments, profiles, reviews, audit
# ---------------------------------------------------------------------------


class RecordPaymentInput(OperationInput):
    booking_id: str
    status: PaymentStatus
    external_reference: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @field_validator("amount", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class CreateConsultantProfileInput(OperationInput):
    headline: str | None = None
    bio: str | None = None
    hourly_rate: Decimal = Field(gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    skills: list[str] = Field(default_factory=list)
    is_available: bool = True
    consent_directory: bool = True

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class UpdateConsultantProfileInput(PatchInput):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"hourly_rate", "currency", "is_available", "consent_directory", "skills"}
    )

    headline: str | None = None
    bio: str | None = None
    hourly_rate: Decimal | None = Field(default=None, gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_available: bool | None = None
    consent_directory: bool | None = None
    skills: list[str] | None = None

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class SearchDirectoryInput(PageInput):
    skills: list[str] = Field(default_factory=list)
    min_rate: Decimal | None = Field(default=None, ge=0)
    max_rate: Decimal | None = Field(default=None, ge=0)
    is_available: bool = True

    @field_validator("min_rate", "max_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class CreateReviewInput(OperationInput):
    engagement_id: str
    rating: int
    comment: str | None = None
    is_public: bool = True


class ListReviewsInput(OperationInput):
    user_id: str | None = None
    engagement_id: str | None = None


class ListAuditInput(OperationInput):
    actor_id: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    action: str | None = None
    from_date: str | None = None
    to_date: str | None = None
    limit: int = Field(default=50, ge=1, le=500)
