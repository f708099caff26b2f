"""Offer Coordinator: offers on published requests and the accept transaction.

Accepting an offer is the engine's central invariant: at most one offer per
request is ever ACCEPTED, and that offer gets exactly one Booking and one
Engagement.  All of it happens in a single ``BEGIN IMMEDIATE`` transaction
that re-reads the offer after taking the write lock, so of two concurrent
accepts the second always sees a non-PENDING offer (or a BOOKED request)
and fails with INVALID_STATUS.
"""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from consulthive.access.guard import AccessClass
from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Offer, Principal
from consulthive.domain.types import OfferStatus, RequestStatus
from consulthive.drafting.models import MatchCandidate
from consulthive.drafting.service import Drafter
from consulthive.lifecycle import OFFER_MACHINE, REQUEST_MACHINE, OfferEvent, RequestEvent
from consulthive.observability.metrics import OFFERS_ACCEPTED
from consulthive.operations.inputs import (
    AcceptOfferInput,
    CreateOfferInput,
    DeclineOfferInput,
    FindMatchesInput,
    ListOffersInput,
)
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, Page, ok
from consulthive.services.common import ensure_allowed, page_window, service_operation
from consulthive.store.database import Database

logger = structlog.get_logger()

# Upper bound on candidates handed to the drafter for ranking
MAX_MATCH_CANDIDATES = 20


class OfferService:
    """Create, list, accept, decline and match offers."""

    def __init__(self, database: Database, drafter: Drafter, settings: Settings) -> None:
        self._db = database
        self._drafter = drafter
        self._settings = settings

    @service_operation
    def create(self, principal: Principal, data: CreateOfferInput) -> OperationResult[Any]:
        """Submit an offer on a public, published request.

        Preconditions are checked in a fixed order, each with its own code:
        NO_PROFILE, NOT_FOUND, INVALID_STATUS, SELF_OFFER, ALREADY_EXISTS.
        """
        try:
            with self._db.transaction() as uow:
                profile = uow.profiles.get_by_user(principal.user_id)
                if profile is None:
                    raise OperationError(ErrorCode.NO_PROFILE)

                request = uow.requests.get(data.request_id)
                if request is None:
                    raise OperationError(ErrorCode.NOT_FOUND, "Request not found")
                if not request.is_public or request.status != RequestStatus.PUBLISHED:
                    raise OperationError(
                        ErrorCode.INVALID_STATUS, "Request not available for offers"
                    )
                if request.creator_id == principal.user_id:
                    raise OperationError(ErrorCode.SELF_OFFER)
                if uow.offers.get_for_consultant(request.id, profile.id) is not None:
                    raise OperationError(ErrorCode.ALREADY_EXISTS, "Offer already exists")

                offer = uow.offers.insert(
                    request.id,
                    profile.id,
                    proposed_rate=data.proposed_rate or profile.hourly_rate,
                    message=data.message,
                )
                uow.audit.log(
                    principal.user_id,
                    AuditAction.OFFER_CREATED,
                    "Offer",
                    offer.id,
                    {"request_id": request.id, "proposed_rate": str(offer.proposed_rate)},
                )
        except sqlite3.IntegrityError as exc:
            # Lost a race against the same consultant's concurrent submission
            raise OperationError(ErrorCode.ALREADY_EXISTS, "Offer already exists") from exc

        logger.info("Offer created", offer_id=offer.id, request_id=offer.request_id)
        return ok(offer)

    @service_operation
    def list(self, principal: Principal, data: ListOffersInput) -> OperationResult[Any]:
        """List offers on one request (owner only), or the caller's own offers."""
        limit, offset = page_window(data, self._settings)
        with self._db.transaction(immediate=False) as uow:
            filters: dict[str, Any] = {}
            if data.request_id is not None:
                request = uow.requests.get(data.request_id)
                if request is None:
                    raise OperationError(ErrorCode.NOT_FOUND, "Request not found")
                ensure_allowed(principal, AccessClass.OWNER, owner_id=request.creator_id)
                filters["request_id"] = request.id
            else:
                profile = uow.profiles.get_by_user(principal.user_id)
                if profile is not None:
                    filters["consultant_id"] = profile.id
                else:
                    filters["request_owner_id"] = principal.user_id

            items, total = uow.offers.search(
                **filters, status=data.status, limit=limit, offset=offset
            )
        return ok(Page[Offer](items=items, total=total, page=data.page, limit=limit))

    @service_operation
    def accept(self, principal: Principal, data: AcceptOfferInput) -> OperationResult[Any]:
        """Accept a PENDING offer, booking the request in one transaction.

        Steps, all-or-nothing: offer ACCEPTED, sibling PENDING offers
        DECLINED, request BOOKED, booking created (PENDING), engagement
        created (ACTIVE), audit entry written.
        """
        try:
            with self._db.transaction() as uow:
                offer = uow.offers.get(data.offer_id)
                if offer is None:
                    raise OperationError(ErrorCode.NOT_FOUND, "Offer not found")
                request = uow.requests.get(offer.request_id)
                consultant = uow.profiles.get(offer.consultant_id)
                if request is None or consultant is None:
                    raise OperationError(ErrorCode.NOT_FOUND, "Offer not found")
                ensure_allowed(principal, AccessClass.OWNER, owner_id=request.creator_id)

                if offer.status != OfferStatus.PENDING:
                    raise OperationError(ErrorCode.INVALID_STATUS, "Offer not pending")
                offer_status = OFFER_MACHINE.next_state(offer.status, OfferEvent.ACCEPT)
                request_status = REQUEST_MACHINE.next_state(request.status, RequestEvent.BOOK)

                uow.offers.set_status(offer.id, offer_status)
                declined = uow.offers.decline_other_pending(request.id, offer.id)
                uow.requests.set_status(request.id, request_status)
                booking = uow.bookings.insert(
                    request_id=request.id,
                    offer_id=offer.id,
                    client_id=principal.user_id,
                    consultant_id=consultant.user_id,
                    scheduled_start=data.scheduled_start,
                    duration=(
                        data.duration
                        or request.suggested_duration
                        or self._settings.default_duration_minutes
                    ),
                )
                engagement = uow.engagements.insert(booking.id)
                uow.audit.log_transition(
                    principal.user_id,
                    AuditAction.OFFER_ACCEPTED,
                    "Offer",
                    offer.id,
                    offer.status,
                    offer_status,
                    request_id=request.id,
                    booking_id=booking.id,
                    engagement_id=engagement.id,
                    declined_offers=declined,
                )
                accepted = uow.offers.get(offer.id)
        except sqlite3.IntegrityError as exc:
            # Unique constraints back the transaction: one ACCEPTED offer per
            # request, one booking per offer, one engagement per booking
            raise OperationError(ErrorCode.INVALID_STATUS, "Offer not pending") from exc

        OFFERS_ACCEPTED.inc()
        logger.info(
            "Offer accepted",
            offer_id=offer.id,
            request_id=request.id,
            booking_id=booking.id,
            engagement_id=engagement.id,
            declined_offers=declined,
        )
        return ok({"offer": accepted, "booking": booking, "engagement": engagement})

    @service_operation
    def decline(self, principal: Principal, data: DeclineOfferInput) -> OperationResult[Any]:
        """Decline (request owner) or withdraw (offering consultant) a PENDING offer."""
        with self._db.transaction() as uow:
            offer = uow.offers.get(data.offer_id)
            if offer is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Offer not found")
            request = uow.requests.get(offer.request_id)
            consultant = uow.profiles.get(offer.consultant_id)
            if request is None or consultant is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Offer not found")

            is_consultant = consultant.user_id == principal.user_id
            if not is_consultant:
                ensure_allowed(principal, AccessClass.OWNER, owner_id=request.creator_id)
            if offer.status != OfferStatus.PENDING:
                raise OperationError(ErrorCode.INVALID_STATUS, "Offer not pending")

            event = OfferEvent.WITHDRAW if is_consultant else OfferEvent.DECLINE
            new_status = OFFER_MACHINE.next_state(offer.status, event)
            uow.offers.set_status(offer.id, new_status)
            uow.audit.log_offer_decision(
                principal.user_id, offer.id, withdrawn=is_consultant, reason=data.reason
            )
            updated = uow.offers.get(offer.id)
        logger.info("Offer settled", offer_id=offer.id, status=new_status.value)
        return ok(updated)

    @service_operation
    def find_matches(self, principal: Principal, data: FindMatchesInput) -> OperationResult[Any]:
        """Rank available consultants for a request.

        Candidates are filtered in storage (available, listed in the
        directory, overlapping skills, rate within budget); scoring and
        explanations come from the drafter.
        """
        with self._db.transaction(immediate=False) as uow:
            request = uow.requests.get(data.request_id)
            if request is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Request not found")
            ensure_allowed(
                principal,
                AccessClass.OWNER,
                owner_id=request.creator_id,
                admin_override=True,
            )
            profiles = uow.profiles.find_candidates(
                skill_slugs=request.required_skills,
                max_rate=request.budget,
                limit=MAX_MATCH_CANDIDATES,
            )
            candidates: list[MatchCandidate] = []
            for profile in profiles:
                user = uow.users.get(profile.user_id)
                candidates.append(
                    MatchCandidate(
                        profile_id=profile.id,
                        name=user.display_name if user is not None else "Unknown",
                        headline=profile.headline,
                        bio=profile.bio,
                        skills=profile.skills,
                        hourly_rate=str(profile.hourly_rate),
                        currency=profile.currency,
                    )
                )

        summary = {"id": request.id, "title": request.title}
        if not candidates:
            return ok({"request": summary, "matches": [], "recommendations": None})

        result = self._drafter.rank_matches(request, candidates, data.limit)
        if not result.ok or result.value is None:
            logger.warning("Match ranking failed", request_id=request.id, error=result.error)
            raise OperationError(ErrorCode.AI_ERROR, "Failed to find matches")
        return ok(
            {
                "request": summary,
                "matches": result.value.matches,
                "recommendations": result.value.recommendations,
            }
        )
