"""The operation catalogue: every named entry point of the engine.

``OperationCatalogue.execute`` is total.  It resolves the operation, runs the
storage-free part of the access decision, validates the payload against the
operation's input model and calls the service.  Whatever the service does
not turn into a result itself is logged and reported as INTERNAL_ERROR.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from consulthive.access.guard import AccessClass, decide
from consulthive.domain.models import Principal
from consulthive.operations.inputs import (
    AcceptOfferInput,
    AddChecklistItemInput,
    CancelRequestInput,
    CreateConsultantProfileInput,
    CreateNoteInput,
    CreateOfferInput,
    CreateRequestInput,
    CreateReviewInput,
    DeclineOfferInput,
    EmptyInput,
    EngagementIdInput,
    FindMatchesInput,
    ListAuditInput,
    ListEngagementsInput,
    ListMessagesInput,
    ListOffersInput,
    ListRequestsInput,
    ListReviewsInput,
    OperationInput,
    RecordPaymentInput,
    RequestIdInput,
    SearchDirectoryInput,
    SendMessageInput,
    ToggleChecklistItemInput,
    UpdateConsultantProfileInput,
    UpdateEngagementInput,
    UpdateNoteInput,
    UpdateRequestInput,
    UpdateTransferPackInput,
)
from consulthive.operations.results import ErrorCode, OperationResult, fail

logger = structlog.get_logger()

Handler = Callable[[Principal | None, Any], OperationResult[Any]]

# Classes whose final decision needs the target entity; the catalogue can only
# require an authenticated caller for them.
_ENTITY_SCOPED = frozenset({AccessClass.OWNER, AccessClass.PARTICIPANT})


@dataclass(frozen=True)
class Operation:
    """One catalogue entry.

    Attributes:
        name: Dotted operation name, e.g. ``"offer.accept"``.
        input_model: Pydantic model the payload is validated against.
        access: Who may invoke the operation.
        handler: Service method called with ``(principal, input)``.
    """

    name: str
    input_model: type[OperationInput]
    access: AccessClass
    handler: Handler

    @property
    def summary(self) -> str:
        doc = getattr(self.handler, "__doc__", None) or ""
        return doc.strip().splitlines()[0] if doc.strip() else ""


def _describe_validation_error(exc: ValidationError) -> str:
    fields = sorted(
        {".".join(str(part) for part in error["loc"]) or "payload" for error in exc.errors()}
    )
    return f"Invalid input: {', '.join(fields)}"


class OperationCatalogue:
    """Registry and dispatcher for catalogue operations."""

    def __init__(self, operations: list[Operation]) -> None:
        self._operations: dict[str, Operation] = {}
        for op in operations:
            if op.name in self._operations:
                msg = f"Duplicate operation name: {op.name}"
                raise ValueError(msg)
            self._operations[op.name] = op

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    @property
    def names(self) -> list[str]:
        return sorted(self._operations)

    def get(self, name: str) -> Operation | None:
        return self._operations.get(name)

    def describe(self) -> list[dict[str, Any]]:
        """Name, access class, summary and input JSON schema of every operation."""
        return [
            {
                "name": op.name,
                "access": op.access.value,
                "summary": op.summary,
                "input": op.input_model.model_json_schema(by_alias=True),
            }
            for op in (self._operations[name] for name in self.names)
        ]

    def execute(
        self,
        name: str,
        payload: Mapping[str, Any] | None,
        principal: Principal | None,
    ) -> OperationResult[Any]:
        """Run one operation and return its result.

        Args:
            name: Operation name.
            payload: JSON-like input; ``None`` counts as an empty object.
            principal: The authenticated caller, or None.

        Returns:
            The operation's result.  Never raises.
        """
        op = self._operations.get(name)
        if op is None:
            return fail(ErrorCode.UNKNOWN_OPERATION)

        access = AccessClass.AUTHENTICATED if op.access in _ENTITY_SCOPED else op.access
        denied = decide(principal, access)
        if denied is not None:
            logger.info("Operation denied", operation=name, code=denied.value)
            return fail(denied)

        try:
            data = op.input_model.model_validate(payload or {})
        except ValidationError as exc:
            logger.info("Operation input rejected", operation=name, errors=exc.error_count())
            return fail(ErrorCode.INVALID_INPUT, _describe_validation_error(exc))

        try:
            return op.handler(principal, data)
        except Exception:
            logger.exception("Operation failed", operation=name)
            return fail(ErrorCode.INTERNAL_ERROR)


def build_catalogue(services: Mapping[str, Any]) -> OperationCatalogue:
    """Wire every operation to its service method.

    Args:
        services: The service instances from ``initialize_services``, keyed
            ``requests``, ``offers``, ``engagements``, ``transfer_packs``,
            ``payments``, ``profiles``, ``reviews`` and ``audit``.

    Returns:
        The populated catalogue.
    """
    requests = services["requests"]
    offers = services["offers"]
    engagements = services["engagements"]
    packs = services["transfer_packs"]
    payments = services["payments"]
    profiles = services["profiles"]
    reviews = services["reviews"]
    audit = services["audit"]

    authenticated = AccessClass.AUTHENTICATED
    owner = AccessClass.OWNER
    participant = AccessClass.PARTICIPANT
    admin = AccessClass.ADMIN

    return OperationCatalogue(
        [
            # Requests
            Operation("request.create", CreateRequestInput, authenticated, requests.create),
            Operation("request.get", RequestIdInput, authenticated, requests.get),
            Operation("request.list", ListRequestsInput, authenticated, requests.list),
            Operation("request.update", UpdateRequestInput, owner, requests.update),
            Operation("request.publish", RequestIdInput, owner, requests.publish),
            Operation("request.refine", RequestIdInput, owner, requests.refine),
            Operation("request.cancel", CancelRequestInput, owner, requests.cancel),
            # Offers
            Operation("offer.create", CreateOfferInput, authenticated, offers.create),
            Operation("offer.list", ListOffersInput, authenticated, offers.list),
            Operation("offer.accept", AcceptOfferInput, owner, offers.accept),
            Operation("offer.decline", DeclineOfferInput, authenticated, offers.decline),
            Operation("offer.findMatches", FindMatchesInput, owner, offers.find_matches),
            # Engagements
            Operation("engagement.get", EngagementIdInput, participant, engagements.get),
            Operation(
                "engagement.list", ListEngagementsInput, authenticated, engagements.list
            ),
            Operation(
                "engagement.update", UpdateEngagementInput, participant, engagements.update
            ),
            Operation(
                "engagement.complete", EngagementIdInput, participant, engagements.complete
            ),
            Operation(
                "engagement.sendMessage", SendMessageInput, participant, engagements.send_message
            ),
            Operation(
                "engagement.listMessages",
                ListMessagesInput,
                participant,
                engagements.list_messages,
            ),
            Operation(
                "engagement.createNote", CreateNoteInput, participant, engagements.create_note
            ),
            Operation(
                "engagement.updateNote", UpdateNoteInput, participant, engagements.update_note
            ),
            Operation(
                "engagement.listNotes", EngagementIdInput, participant, engagements.list_notes
            ),
            Operation(
                "engagement.addChecklistItem",
                AddChecklistItemInput,
                participant,
                engagements.add_checklist_item,
            ),
            Operation(
                "engagement.toggleChecklistItem",
                ToggleChecklistItemInput,
                participant,
                engagements.toggle_checklist_item,
            ),
            Operation(
                "engagement.listChecklist",
                EngagementIdInput,
                participant,
                engagements.list_checklist,
            ),
            # Transfer packs
            Operation("transferPack.generate", EngagementIdInput, participant, packs.generate),
            Operation("transferPack.get", EngagementIdInput, participant, packs.get),
            Operation(
                "transferPack.update", UpdateTransferPackInput, participant, packs.update
            ),
            Operation("transferPack.finalize", EngagementIdInput, participant, packs.finalize),
            # Payments, profiles, reviews, audit
            Operation(
                "payment.recordStatus", RecordPaymentInput, admin, payments.record_status
            ),
            Operation("profile.get", EmptyInput, authenticated, profiles.get),
            Operation(
                "profile.createConsultant",
                CreateConsultantProfileInput,
                authenticated,
                profiles.create_consultant,
            ),
            Operation(
                "profile.updateConsultant",
                UpdateConsultantProfileInput,
                authenticated,
                profiles.update_consultant,
            ),
            Operation(
                "profile.searchDirectory",
                SearchDirectoryInput,
                authenticated,
                profiles.search_directory,
            ),
            Operation("review.create", CreateReviewInput, participant, reviews.create),
            Operation("review.list", ListReviewsInput, authenticated, reviews.list),
            Operation("audit.list", ListAuditInput, admin, audit.list),
        ]
    )
