"""Lifecycle services behind the operation catalogue."""

from consulthive.services.audit import AuditService
from consulthive.services.engagements import EngagementService
from consulthive.services.offers import OfferService
from consulthive.services.payments import PaymentService
from consulthive.services.profiles import ProfileService
from consulthive.services.requests import RequestService
from consulthive.services.reviews import ReviewService
from consulthive.services.transfer_packs import TransferPackService

__all__ = [
    "AuditService",
    "EngagementService",
    "OfferService",
    "PaymentService",
    "ProfileService",
    "RequestService",
    "ReviewService",
    "TransferPackService",
]
