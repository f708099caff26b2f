"""Domain types, models, and errors for the marketplace lifecycle engine."""

from consulthive.domain.errors import DraftingError, InvalidTransitionError, MarketplaceError
from consulthive.domain.models import (
    AuditLogEntry,
    Booking,
    ChecklistItem,
    ConsultantProfile,
    Engagement,
    EngagementWorkspace,
    Message,
    Note,
    Offer,
    Payment,
    Principal,
    Request,
    Review,
    SkillTag,
    TransferPack,
    User,
)
from consulthive.domain.types import (
    BookingStatus,
    EngagementStatus,
    OfferStatus,
    PaymentStatus,
    RequestStatus,
    ReviewType,
    Urgency,
    UserRole,
    normalize_skill_slug,
)

__all__ = [
    "AuditLogEntry",
    "Booking",
    "BookingStatus",
    "ChecklistItem",
    "ConsultantProfile",
    "DraftingError",
    "Engagement",
    "EngagementStatus",
    "EngagementWorkspace",
    "InvalidTransitionError",
    "MarketplaceError",
    "Message",
    "Note",
    "Offer",
    "OfferStatus",
    "Payment",
    "PaymentStatus",
    "Principal",
    "Request",
    "RequestStatus",
    "Review",
    "ReviewType",
    "SkillTag",
    "TransferPack",
    "Urgency",
    "User",
    "UserRole",
    "normalize_skill_slug",
]
