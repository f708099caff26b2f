"""Engagement Controller: the collaborative workspace behind a Booking.

Only the booking's client and consultant may touch an engagement.  Reading
is always allowed to them; writing to the workspace (messages, notes,
checklist) waits for the payment lock to lift and for the engagement to be
ACTIVE or PAUSED.  Completion requires a finalized transfer pack.
"""

from __future__ import annotations

from typing import Any

import structlog

from consulthive.access.guard import AccessClass
from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Engagement, EngagementWorkspace, Message, Principal
from consulthive.domain.types import EngagementStatus
from consulthive.lifecycle import (
    BOOKING_MACHINE,
    ENGAGEMENT_MACHINE,
    REQUEST_MACHINE,
    BookingEvent,
    EngagementEvent,
    RequestEvent,
)
from consulthive.observability.metrics import ENGAGEMENTS_COMPLETED
from consulthive.operations.inputs import (
    AddChecklistItemInput,
    CreateNoteInput,
    EngagementIdInput,
    ListEngagementsInput,
    ListMessagesInput,
    SendMessageInput,
    ToggleChecklistItemInput,
    UpdateEngagementInput,
    UpdateNoteInput,
    patch_fields,
)
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, Page, ok
from consulthive.services.common import (
    ensure_allowed,
    ensure_workspace_writable,
    load_engagement,
    page_window,
    service_operation,
)
from consulthive.store.database import Database
from consulthive.store.rows import utcnow

logger = structlog.get_logger()

RECENT_MESSAGE_COUNT = 10


class EngagementService:
    """Engagement status, workspace records and gated completion."""

    def __init__(self, database: Database, settings: Settings) -> None:
        self._db = database
        self._settings = settings

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    @service_operation
    def get(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        """Return the workspace snapshot; available even while locked."""
        with self._db.transaction(immediate=False) as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            workspace = EngagementWorkspace(
                engagement=engagement,
                booking=booking,
                is_locked=not booking.is_paid,
                recent_messages=uow.workspace.latest_messages(
                    engagement.id, RECENT_MESSAGE_COUNT
                ),
                checklist=uow.workspace.list_checklist(engagement.id),
                transfer_pack=uow.transfer_packs.get_by_engagement(engagement.id),
            )
        return ok(workspace)

    @service_operation
    def list(self, principal: Principal, data: ListEngagementsInput) -> OperationResult[Any]:
        limit, offset = page_window(data, self._settings)
        with self._db.transaction(immediate=False) as uow:
            items, total = uow.engagements.search_for_participant(
                principal.user_id, status=data.status, limit=limit, offset=offset
            )
        return ok(Page[Engagement](items=items, total=total, page=data.page, limit=limit))

    @service_operation
    def update(self, principal: Principal, data: UpdateEngagementInput) -> OperationResult[Any]:
        """Patch agenda and video link, or pause/resume through the machine."""
        fields = patch_fields(data)
        with self._db.transaction() as uow:
            engagement, _ = load_engagement(uow, data.engagement_id, principal)
            if ENGAGEMENT_MACHINE.is_terminal(engagement.status):
                raise OperationError(
                    ErrorCode.INVALID_STATUS, f"Engagement is {engagement.status.value}"
                )

            target = fields.pop("status", None)
            if target is not None and target != engagement.status:
                event = (
                    EngagementEvent.PAUSE
                    if target == EngagementStatus.PAUSED
                    else EngagementEvent.RESUME
                )
                fields["status"] = ENGAGEMENT_MACHINE.next_state(engagement.status, event)

            if fields:
                uow.engagements.update_fields(engagement.id, fields)
                uow.audit.log(
                    principal.user_id,
                    AuditAction.ENGAGEMENT_UPDATED,
                    "Engagement",
                    engagement.id,
                    {"fields": sorted(fields)},
                )
            updated = uow.engagements.get(engagement.id)
        return ok(updated)

    @service_operation
    def complete(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        """Close the engagement once its transfer pack is finalized.

        Engagement COMPLETED with ``ended_at``, booking COMPLETED and the
        parent request COMPLETED, in one transaction.
        """
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            if ENGAGEMENT_MACHINE.is_terminal(engagement.status):
                raise OperationError(ErrorCode.INVALID_STATUS, "Engagement already completed")

            pack = uow.transfer_packs.get_by_engagement(engagement.id)
            if pack is None or not pack.is_finalized:
                raise OperationError(ErrorCode.TRANSFER_REQUIRED)

            new_status = ENGAGEMENT_MACHINE.next_state(
                engagement.status, EngagementEvent.COMPLETE
            )
            booking_status = BOOKING_MACHINE.next_state(booking.status, BookingEvent.COMPLETE)

            uow.engagements.set_status(engagement.id, new_status, ended_at=utcnow())
            uow.bookings.set_status(booking.id, booking_status)
            if booking.request_id is not None:
                request = uow.requests.get(booking.request_id)
                if request is not None and REQUEST_MACHINE.can_apply(
                    request.status, RequestEvent.COMPLETE
                ):
                    uow.requests.set_status(
                        request.id,
                        REQUEST_MACHINE.next_state(request.status, RequestEvent.COMPLETE),
                    )

            uow.audit.log_transition(
                principal.user_id,
                AuditAction.ENGAGEMENT_COMPLETED,
                "Engagement",
                engagement.id,
                engagement.status,
                new_status,
                booking_id=booking.id,
                transfer_pack_id=pack.id,
            )
            updated = uow.engagements.get(engagement.id)

        ENGAGEMENTS_COMPLETED.inc()
        logger.info("Engagement completed", engagement_id=engagement.id, booking_id=booking.id)
        return ok(updated)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    @service_operation
    def send_message(self, principal: Principal, data: SendMessageInput) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_workspace_writable(engagement, booking)
            message = uow.workspace.add_message(engagement.id, principal.user_id, data.content)
            uow.audit.log(
                principal.user_id,
                AuditAction.MESSAGE_SENT,
                "Message",
                message.id,
                {"engagement_id": engagement.id},
            )
        return ok(message)

    @service_operation
    def list_messages(self, principal: Principal, data: ListMessagesInput) -> OperationResult[Any]:
        """Messages oldest first, paginated."""
        limit, offset = page_window(data, self._settings)
        with self._db.transaction(immediate=False) as uow:
            engagement, _ = load_engagement(uow, data.engagement_id, principal)
            items = uow.workspace.list_messages(engagement.id, limit=limit, offset=offset)
            total = uow.workspace.count_messages(engagement.id)
        return ok(Page[Message](items=items, total=total, page=data.page, limit=limit))

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    @service_operation
    def create_note(self, principal: Principal, data: CreateNoteInput) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_workspace_writable(engagement, booking)
            note = uow.workspace.add_note(
                engagement.id,
                principal.user_id,
                content=data.content,
                title=data.title,
                is_private=data.is_private,
            )
            uow.audit.log(
                principal.user_id,
                AuditAction.NOTE_CREATED,
                "Note",
                note.id,
                {"engagement_id": engagement.id, "is_private": note.is_private},
            )
        return ok(note)

    @service_operation
    def update_note(self, principal: Principal, data: UpdateNoteInput) -> OperationResult[Any]:
        """Edit a note; only its author may, and only while the workspace is writable."""
        fields = patch_fields(data)
        with self._db.transaction() as uow:
            note = uow.workspace.get_note(data.note_id)
            if note is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Note not found")
            engagement, booking = load_engagement(uow, note.engagement_id, principal)
            ensure_allowed(principal, AccessClass.OWNER, owner_id=note.author_id)
            ensure_workspace_writable(engagement, booking)

            if fields:
                uow.workspace.update_note(note.id, fields)
                uow.audit.log(
                    principal.user_id,
                    AuditAction.NOTE_UPDATED,
                    "Note",
                    note.id,
                    {"fields": sorted(fields)},
                )
            updated = uow.workspace.get_note(note.id)
        return ok(updated)

    @service_operation
    def list_notes(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        """Shared notes plus the caller's own private notes."""
        with self._db.transaction(immediate=False) as uow:
            engagement, _ = load_engagement(uow, data.engagement_id, principal)
            notes = uow.workspace.list_notes(engagement.id, principal.user_id)
        return ok(notes)

    # ------------------------------------------------------------------
    # Checklist
    # ------------------------------------------------------------------

    @service_operation
    def add_checklist_item(
        self, principal: Principal, data: AddChecklistItemInput
    ) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_workspace_writable(engagement, booking)
            item = uow.workspace.add_checklist_item(engagement.id, data.text)
            uow.audit.log(
                principal.user_id,
                AuditAction.CHECKLIST_ITEM_ADDED,
                "ChecklistItem",
                item.id,
                {"engagement_id": engagement.id, "position": item.position},
            )
        return ok(item)

    @service_operation
    def toggle_checklist_item(
        self, principal: Principal, data: ToggleChecklistItemInput
    ) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            item = uow.workspace.get_checklist_item(data.item_id)
            if item is None:
                raise OperationError(ErrorCode.NOT_FOUND, "Checklist item not found")
            engagement, booking = load_engagement(uow, item.engagement_id, principal)
            ensure_workspace_writable(engagement, booking)
            uow.workspace.toggle_checklist_item(item.id)
            uow.audit.log(
                principal.user_id,
                AuditAction.CHECKLIST_ITEM_TOGGLED,
                "ChecklistItem",
                item.id,
                {"is_completed": not item.is_completed},
            )
            updated = uow.workspace.get_checklist_item(item.id)
        return ok(updated)

    @service_operation
    def list_checklist(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        with self._db.transaction(immediate=False) as uow:
            engagement, _ = load_engagement(uow, data.engagement_id, principal)
            items = uow.workspace.list_checklist(engagement.id)
        return ok(items)
