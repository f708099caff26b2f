"""Pydantic v2 models for the marketplace records.

Each model mirrors one table row.  Money fields are ``Decimal`` and reject
float input so rates and budgets never pick up binary rounding errors.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from consulthive.domain.types import (
    BookingStatus,
    EngagementStatus,
    OfferStatus,
    PaymentStatus,
    RequestStatus,
    ReviewType,
    Urgency,
    UserRole,
)


def reject_float_money(v: object) -> object:
    """Reject float inputs for monetary fields to prevent precision errors."""
    if isinstance(v, float):
        raise ValueError("Use Decimal or string, not float, for monetary values")
    return v


class Principal(BaseModel):
    """The authenticated caller of an operation."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class User(BaseModel):
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole = UserRole.CLIENT
    created_at: datetime

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown"


class SkillTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    slug: str


class ConsultantProfile(BaseModel):
    """A user's consultant profile; required to submit offers."""

    id: str
    user_id: str
    headline: str | None = None
    bio: str | None = None
    hourly_rate: Decimal
    currency: str
    is_available: bool = True
    consent_directory: bool = True
    skills: list[str] = Field(default_factory=list)
    created_at: datetime

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class Request(BaseModel):
    """A client-authored description of a consulting need."""

    id: str
    creator_id: str
    title: str
    raw_description: str
    refined_summary: str | None = None
    constraints: str | None = None
    desired_outcome: str | None = None
    suggested_duration: int | None = None
    urgency: Urgency = Urgency.NORMAL
    budget: Decimal | None = None
    currency: str
    is_public: bool = True
    status: RequestStatus = RequestStatus.DRAFT
    required_skills: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("budget", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class Offer(BaseModel):
    """A consultant's proposal to fulfil a Request at a given rate."""

    id: str
    request_id: str
    consultant_id: str
    message: str | None = None
    proposed_rate: Decimal
    status: OfferStatus = OfferStatus.PENDING
    created_at: datetime
    updated_at: datetime

    @field_validator("proposed_rate", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class Payment(BaseModel):
    """The checkout processor's view of a Booking's payment."""

    id: str
    booking_id: str
    status: PaymentStatus = PaymentStatus.PENDING
    external_reference: str | None = None
    amount: Decimal | None = None
    currency: str
    updated_at: datetime

    @field_validator("amount", mode="before")
    @classmethod
    def reject_float_inputs(cls, v: object) -> object:
        return reject_float_money(v)


class Booking(BaseModel):
    """The confirmed client/consultant pairing created by an accepted Offer."""

    id: str
    request_id: str | None = None
    offer_id: str | None = None
    client_id: str
    consultant_id: str
    scheduled_start: datetime | None = None
    duration: int
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime
    payment: Payment | None = None

    @property
    def participant_ids(self) -> tuple[str, str]:
        return (self.client_id, self.consultant_id)

    @property
    def is_paid(self) -> bool:
        return self.payment is not None and self.payment.status == PaymentStatus.SUCCEEDED


class Engagement(BaseModel):
    """The collaborative workspace tied 1:1 to a Booking."""

    id: str
    booking_id: str
    status: EngagementStatus = EngagementStatus.ACTIVE
    agenda: str | None = None
    video_link: str | None = None
    started_at: datetime
    ended_at: datetime | None = None
    updated_at: datetime


class Message(BaseModel):
    id: str
    engagement_id: str
    author_id: str
    content: str
    created_at: datetime


class Note(BaseModel):
    id: str
    engagement_id: str
    author_id: str
    title: str | None = None
    content: str
    is_private: bool = False
    created_at: datetime
    updated_at: datetime

    def visible_to(self, user_id: str) -> bool:
        """Private notes are visible only to their author."""
        return not self.is_private or self.author_id == user_id


class ChecklistItem(BaseModel):
    id: str
    engagement_id: str
    text: str
    is_completed: bool = False
    position: int = Field(ge=0)
    created_at: datetime


class TransferPack(BaseModel):
    """The knowledge-transfer document that must be finalized before completion."""

    id: str
    engagement_id: str
    summary: str | None = None
    key_decisions: str | None = None
    runbook: str | None = None
    next_steps: str | None = None
    internalization_checklist: str | None = None
    ai_generated: bool = False
    is_finalized: bool = False
    finalized_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_complete(self) -> bool:
        """Finalization needs a non-blank summary and key decisions."""
        return bool((self.summary or "").strip()) and bool((self.key_decisions or "").strip())


class Review(BaseModel):
    id: str
    engagement_id: str
    author_id: str
    target_id: str
    type: ReviewType
    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    is_public: bool = True
    created_at: datetime


class AuditLogEntry(BaseModel):
    """A stored, immutable audit trail row."""

    model_config = ConfigDict(frozen=True)

    id: int
    actor_id: str | None = None
    action: str
    entity_type: str
    entity_id: str
    metadata: dict[str, Any] | None = None
    timestamp: datetime


class EngagementWorkspace(BaseModel):
    """An Engagement with its Booking, lock flag and workspace snapshot."""

    engagement: Engagement
    booking: Booking
    is_locked: bool
    recent_messages: list[Message] = Field(default_factory=list)
    checklist: list[ChecklistItem] = Field(default_factory=list)
    transfer_pack: TransferPack | None = None
