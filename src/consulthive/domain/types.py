"""Domain enumerations for the consulting marketplace lifecycle."""

from enum import StrEnum


class UserRole(StrEnum):
    """Roles a marketplace user can hold."""

    CLIENT = "CLIENT"
    CONSULTANT = "CONSULTANT"
    BOTH = "BOTH"
    ADMIN = "ADMIN"


class Urgency(StrEnum):
    """How quickly a client needs a consultation."""

    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RequestStatus(StrEnum):
    """States in the Request lifecycle."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    MATCHING = "MATCHING"
    BOOKED = "BOOKED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OfferStatus(StrEnum):
    """States of a consultant's Offer on a Request."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    WITHDRAWN = "WITHDRAWN"


class BookingStatus(StrEnum):
    """States of a Booking created from an accepted Offer."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(StrEnum):
    """Payment states reported by the external checkout processor."""

    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class EngagementStatus(StrEnum):
    """States of the collaborative Engagement workspace."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    TRANSFERRED = "TRANSFERRED"


class ReviewType(StrEnum):
    """Direction of a post-engagement review."""

    CLIENT_TO_CONSULTANT = "CLIENT_TO_CONSULTANT"
    CONSULTANT_TO_CLIENT = "CONSULTANT_TO_CLIENT"


# Roles allowed to browse other clients' published requests
CONSULTANT_ROLES: frozenset[UserRole] = frozenset({UserRole.CONSULTANT, UserRole.BOTH})

# Engagement states in which the workspace accepts changes
WORKSPACE_OPEN_STATES: frozenset[EngagementStatus] = frozenset(
    {EngagementStatus.ACTIVE, EngagementStatus.PAUSED}
)

# Request states in which the owner may still edit the request
EDITABLE_REQUEST_STATES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.DRAFT, RequestStatus.PUBLISHED}
)


def normalize_skill_slug(name: str) -> str:
    """Turn a free-text skill name into its canonical slug.

    Lowercases the name and collapses every run of whitespace into a single
    hyphen, so ``"Data  Engineering"`` and ``"data engineering"`` share a tag.

    Args:
        name: The skill name as typed by a user.

    Returns:
        The normalized slug.

    Raises:
        ValueError: If the name is empty or whitespace-only.
    """
    slug = "-".join(name.lower().split())
    if not slug:
        raise ValueError("skill name must not be empty")
    return slug
