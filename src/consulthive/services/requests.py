"""Request Manager: the client-owned Request lifecycle.

Requests are created in DRAFT, published by their owner and only reach
BOOKED through an accepted Offer (see :mod:`consulthive.services.offers`).
"""

from __future__ import annotations

from typing import Any

import structlog

from consulthive.access.guard import AccessClass
from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Offer, Principal, Request, SkillTag
from consulthive.domain.types import (
    CONSULTANT_ROLES,
    EDITABLE_REQUEST_STATES,
    RequestStatus,
)
from consulthive.drafting.service import Drafter
from consulthive.lifecycle import REQUEST_MACHINE, RequestEvent
from consulthive.operations.inputs import (
    CancelRequestInput,
    CreateRequestInput,
    ListRequestsInput,
    RequestIdInput,
    UpdateRequestInput,
    patch_fields,
)
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, Page, ok
from consulthive.services.common import ensure_allowed, page_window, service_operation
from consulthive.store.database import Database, UnitOfWork

logger = structlog.get_logger()


def can_view(principal: Principal, request: Request) -> bool:
    """Owners, admins and consultants see any request; others only public PUBLISHED ones."""
    if request.creator_id == principal.user_id or principal.is_admin:
        return True
    if principal.role in CONSULTANT_ROLES:
        return True
    return request.is_public and request.status == RequestStatus.PUBLISHED


class RequestService:
    """Create, edit, publish, refine and cancel client Requests."""

    def __init__(self, database: Database, drafter: Drafter, settings: Settings) -> None:
        self._db = database
        self._drafter = drafter
        self._settings = settings

    def _load_owned(self, uow: UnitOfWork, request_id: str, principal: Principal) -> Request:
        request = uow.requests.get(request_id)
        if request is None:
            raise OperationError(ErrorCode.NOT_FOUND, "Request not found")
        ensure_allowed(principal, AccessClass.OWNER, owner_id=request.creator_id)
        return request

    def _resolve_skills(self, uow: UnitOfWork, names: list[str]) -> list[SkillTag]:
        try:
            return uow.skills.upsert_many(names)
        except ValueError as exc:
            raise OperationError(ErrorCode.INVALID_INPUT, str(exc)) from exc

    def _book_directly(
        self, uow: UnitOfWork, principal: Principal, request: Request, consultant_user_id: str
    ) -> Offer:
        """Offer *request* to one consultant and take it out of the public listing."""
        if consultant_user_id == principal.user_id:
            raise OperationError(ErrorCode.SELF_OFFER)
        profile = uow.profiles.get_by_user(consultant_user_id)
        if profile is None:
            raise OperationError(ErrorCode.NOT_FOUND, "Consultant not found")

        published = REQUEST_MACHINE.next_state(request.status, RequestEvent.PUBLISH)
        matching = REQUEST_MACHINE.next_state(published, RequestEvent.START_MATCHING)
        uow.requests.update_fields(request.id, {"status": matching, "is_public": False})
        offer = uow.offers.insert(request.id, profile.id, proposed_rate=profile.hourly_rate)
        uow.audit.log(
            principal.user_id,
            AuditAction.OFFER_CREATED,
            "Offer",
            offer.id,
            {
                "request_id": request.id,
                "proposed_rate": str(offer.proposed_rate),
                "direct": True,
            },
        )
        return offer

    @service_operation
    def create(self, principal: Principal, data: CreateRequestInput) -> OperationResult[Any]:
        """Create a DRAFT request, or a private MATCHING one offered to ``consultant_id``."""
        currency = (data.currency or self._settings.default_currency).upper()
        with self._db.transaction() as uow:
            tags = self._resolve_skills(uow, data.skills)
            request = uow.requests.insert(
                principal.user_id,
                title=data.title,
                raw_description=data.raw_description,
                currency=currency,
                urgency=data.urgency,
                constraints=data.constraints,
                desired_outcome=data.desired_outcome,
                suggested_duration=data.suggested_duration,
                budget=data.budget,
                is_public=data.is_public,
                skill_tags=tags,
            )
            uow.audit.log(
                principal.user_id,
                AuditAction.REQUEST_CREATED,
                "Request",
                request.id,
                {"title": request.title},
            )
            offer = None
            if data.consultant_id is not None:
                offer = self._book_directly(uow, principal, request, data.consultant_id)
                request = uow.requests.get(request.id)
        logger.info(
            "Request created",
            request_id=request.id,
            creator_id=principal.user_id,
            direct_offer_id=offer.id if offer else None,
        )
        return ok(request)

    @service_operation
    def get(self, principal: Principal, data: RequestIdInput) -> OperationResult[Any]:
        with self._db.transaction(immediate=False) as uow:
            request = uow.requests.get(data.request_id)
        if request is None:
            raise OperationError(ErrorCode.NOT_FOUND, "Request not found")
        if not can_view(principal, request):
            raise OperationError(ErrorCode.FORBIDDEN)
        return ok(request)

    @service_operation
    def list(self, principal: Principal, data: ListRequestsInput) -> OperationResult[Any]:
        """Consultants browse public requests; everyone else lists their own."""
        limit, offset = page_window(data, self._settings)
        browsing = principal.role in CONSULTANT_ROLES or principal.is_admin
        with self._db.transaction(immediate=False) as uow:
            items, total = uow.requests.search(
                creator_id=None if browsing else principal.user_id,
                public_only=browsing,
                status=(data.status or RequestStatus.PUBLISHED) if browsing else data.status,
                urgency=data.urgency,
                min_budget=data.min_budget,
                max_budget=data.max_budget,
                limit=limit,
                offset=offset,
            )
        return ok(Page[Request](items=items, total=total, page=data.page, limit=limit))

    @service_operation
    def update(self, principal: Principal, data: UpdateRequestInput) -> OperationResult[Any]:
        """Apply an explicit patch while the request is DRAFT or PUBLISHED.

        A ``status`` field may only move the request between DRAFT and
        PUBLISHED, through the lifecycle machine.
        """
        fields = patch_fields(data)
        skills = fields.pop("skills", None)
        target_status = fields.pop("status", None)

        with self._db.transaction() as uow:
            request = self._load_owned(uow, data.request_id, principal)
            if request.status not in EDITABLE_REQUEST_STATES:
                raise OperationError(
                    ErrorCode.INVALID_STATUS, f"Request is {request.status.value}"
                )

            if target_status is not None and target_status != request.status:
                if target_status == RequestStatus.PUBLISHED:
                    event = RequestEvent.PUBLISH
                elif target_status == RequestStatus.DRAFT:
                    event = RequestEvent.UNPUBLISH
                else:
                    raise OperationError(
                        ErrorCode.INVALID_STATUS, "Status can only be DRAFT or PUBLISHED"
                    )
                fields["status"] = REQUEST_MACHINE.next_state(request.status, event)

            if "currency" in fields:
                fields["currency"] = fields["currency"].upper()
            if fields:
                uow.requests.update_fields(request.id, fields)
            if skills is not None:
                uow.requests.set_skills(request.id, self._resolve_skills(uow, skills))

            changed = sorted(fields) + (["skills"] if skills is not None else [])
            uow.audit.log(
                principal.user_id,
                AuditAction.REQUEST_UPDATED,
                "Request",
                request.id,
                {"fields": changed},
            )
            updated = uow.requests.get(request.id)
        return ok(updated)

    @service_operation
    def publish(self, principal: Principal, data: RequestIdInput) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            request = self._load_owned(uow, data.request_id, principal)
            new_status = REQUEST_MACHINE.next_state(request.status, RequestEvent.PUBLISH)
            uow.requests.set_status(request.id, new_status)
            uow.audit.log_transition(
                principal.user_id,
                AuditAction.REQUEST_PUBLISHED,
                "Request",
                request.id,
                request.status,
                new_status,
            )
            updated = uow.requests.get(request.id)
        logger.info("Request published", request_id=request.id)
        return ok(updated)

    @service_operation
    def refine(self, principal: Principal, data: RequestIdInput) -> OperationResult[Any]:
        """Ask the drafter for a structured scope and store it.

        The drafter runs outside any transaction; the write re-checks
        ownership and status so a request edited or cancelled meanwhile is
        not overwritten.
        """
        with self._db.transaction(immediate=False) as uow:
            request = self._load_owned(uow, data.request_id, principal)
        if request.status not in EDITABLE_REQUEST_STATES:
            raise OperationError(ErrorCode.INVALID_STATUS, f"Request is {request.status.value}")

        result = self._drafter.refine_request(request)
        if not result.ok or result.value is None:
            logger.warning("Request refinement failed", request_id=request.id, error=result.error)
            raise OperationError(ErrorCode.AI_ERROR, "Failed to refine request")
        refinement = result.value

        with self._db.transaction() as uow:
            current = self._load_owned(uow, data.request_id, principal)
            if current.status not in EDITABLE_REQUEST_STATES:
                raise OperationError(
                    ErrorCode.INVALID_STATUS, f"Request is {current.status.value}"
                )
            uow.requests.update_fields(
                current.id,
                {
                    "refined_summary": refinement.summary,
                    "desired_outcome": refinement.desired_outcome or current.desired_outcome,
                    "suggested_duration": refinement.suggested_duration,
                },
            )
            if refinement.suggested_skills:
                uow.requests.set_skills(
                    current.id, self._resolve_skills(uow, refinement.suggested_skills)
                )
            uow.audit.log(
                principal.user_id,
                AuditAction.REQUEST_REFINED,
                "Request",
                current.id,
                {"suggested_skills": refinement.suggested_skills},
            )
            updated = uow.requests.get(current.id)
        return ok({"request": updated, "refinement": refinement})

    @service_operation
    def cancel(self, principal: Principal, data: CancelRequestInput) -> OperationResult[Any]:
        """Cancel a request; existing offers and bookings are left as they are."""
        with self._db.transaction() as uow:
            request = self._load_owned(uow, data.request_id, principal)
            new_status = REQUEST_MACHINE.next_state(request.status, RequestEvent.CANCEL)
            uow.requests.set_status(request.id, new_status)
            uow.audit.log_cancellation(
                principal.user_id, request.id, request.status, reason=data.reason
            )
            updated = uow.requests.get(request.id)
        logger.info("Request cancelled", request_id=request.id)
        return ok(updated)
