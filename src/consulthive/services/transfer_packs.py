"""Transfer Pack Manager: the knowledge-transfer document of an engagement.

Each engagement has at most one pack.  It can be drafted by the text
generation service, edited by either participant and finally frozen;
finalizing moves the engagement to TRANSFERRED in the same transaction.
"""

from __future__ import annotations

from typing import Any

import structlog

from consulthive.audit.models import AuditAction
from consulthive.config import Settings
from consulthive.domain.models import Principal, TransferPack
from consulthive.drafting.client import MAX_CONTEXT_MESSAGES
from consulthive.drafting.models import EngagementContext
from consulthive.drafting.service import Drafter
from consulthive.lifecycle import ENGAGEMENT_MACHINE, EngagementEvent
from consulthive.observability.metrics import TRANSFER_PACKS_FINALIZED
from consulthive.operations.inputs import (
    EngagementIdInput,
    UpdateTransferPackInput,
    patch_fields,
)
from consulthive.operations.results import ErrorCode, OperationError, OperationResult, ok
from consulthive.services.common import ensure_unlocked, load_engagement, service_operation
from consulthive.store.database import Database, UnitOfWork

logger = structlog.get_logger()


def _require_pack(uow: UnitOfWork, engagement_id: str) -> TransferPack:
    pack = uow.transfer_packs.get_by_engagement(engagement_id)
    if pack is None:
        raise OperationError(ErrorCode.NOT_FOUND, "Transfer pack not found")
    return pack


def _ensure_not_finalized(pack: TransferPack | None) -> None:
    if pack is not None and pack.is_finalized:
        raise OperationError(ErrorCode.ALREADY_FINALIZED)


class TransferPackService:
    """Generate, read, edit and finalize transfer packs."""

    def __init__(self, database: Database, drafter: Drafter, settings: Settings) -> None:
        self._db = database
        self._drafter = drafter
        self._settings = settings

    def _build_context(
        self, uow: UnitOfWork, engagement_id: str, request_id: str | None
    ) -> EngagementContext:
        request = uow.requests.get(request_id) if request_id is not None else None
        messages = uow.workspace.latest_messages(engagement_id, MAX_CONTEXT_MESSAGES)
        notes = uow.workspace.list_shared_notes(engagement_id)
        checklist = uow.workspace.list_checklist(engagement_id)
        return EngagementContext(
            request_title=request.title if request else None,
            request_description=(
                (request.refined_summary or request.raw_description) if request else None
            ),
            messages=[message.content for message in messages],
            notes=[(note.title, note.content) for note in notes],
            checklist=[(item.text, item.is_completed) for item in checklist],
        )

    @service_operation
    def generate(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        """Draft the pack from the workspace and store it.

        Context is read in one transaction, the drafter runs with no
        transaction open, and the result is written in a second transaction
        that checks the pack was not finalized in between.
        """
        with self._db.transaction(immediate=False) as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_unlocked(booking)
            _ensure_not_finalized(uow.transfer_packs.get_by_engagement(engagement.id))
            context = self._build_context(uow, engagement.id, booking.request_id)

        result = self._drafter.draft_transfer_pack(context)
        if not result.ok or result.value is None:
            logger.warning(
                "Transfer pack generation failed",
                engagement_id=engagement.id,
                error=result.error,
            )
            raise OperationError(ErrorCode.AI_ERROR, "Failed to generate transfer pack")

        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_unlocked(booking)
            _ensure_not_finalized(uow.transfer_packs.get_by_engagement(engagement.id))
            pack = uow.transfer_packs.upsert_generated(engagement.id, result.value.model_dump())
            uow.audit.log(
                principal.user_id,
                AuditAction.TRANSFER_PACK_GENERATED,
                "TransferPack",
                pack.id,
                {"engagement_id": engagement.id},
            )
        logger.info("Transfer pack generated", engagement_id=engagement.id, pack_id=pack.id)
        return ok(pack)

    @service_operation
    def get(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        with self._db.transaction(immediate=False) as uow:
            engagement, _ = load_engagement(uow, data.engagement_id, principal)
            pack = _require_pack(uow, engagement.id)
        return ok(pack)

    @service_operation
    def update(self, principal: Principal, data: UpdateTransferPackInput) -> OperationResult[Any]:
        """Edit pack content; a finalized pack rejects even an empty patch."""
        fields = patch_fields(data)
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_unlocked(booking)
            pack = _require_pack(uow, engagement.id)
            _ensure_not_finalized(pack)
            if fields:
                uow.transfer_packs.update_content(pack.id, fields)
                uow.audit.log(
                    principal.user_id,
                    AuditAction.TRANSFER_PACK_UPDATED,
                    "TransferPack",
                    pack.id,
                    {"fields": sorted(fields)},
                )
            updated = uow.transfer_packs.get_by_engagement(engagement.id)
        return ok(updated)

    @service_operation
    def finalize(self, principal: Principal, data: EngagementIdInput) -> OperationResult[Any]:
        with self._db.transaction() as uow:
            engagement, booking = load_engagement(uow, data.engagement_id, principal)
            ensure_unlocked(booking)
            pack = _require_pack(uow, engagement.id)
            _ensure_not_finalized(pack)
            if not pack.is_complete:
                raise OperationError(
                    ErrorCode.INCOMPLETE, "Summary and key decisions are required"
                )

            new_status = ENGAGEMENT_MACHINE.next_state(
                engagement.status, EngagementEvent.TRANSFER
            )
            uow.transfer_packs.finalize(pack.id)
            uow.engagements.set_status(engagement.id, new_status)
            uow.audit.log_transition(
                principal.user_id,
                AuditAction.TRANSFER_PACK_FINALIZED,
                "TransferPack",
                pack.id,
                engagement.status,
                new_status,
                engagement_id=engagement.id,
            )
            finalized = uow.transfer_packs.get_by_engagement(engagement.id)

        TRANSFER_PACKS_FINALIZED.inc()
        logger.info("Transfer pack finalized", engagement_id=engagement.id, pack_id=pack.id)
        return ok(finalized)
