"""Admin read access to the audit trail."""

from __future__ import annotations

from typing import Any

from consulthive.audit.cli import end_of_day
from consulthive.audit.store import query_audit_trail
from consulthive.domain.models import AuditLogEntry, Principal
from consulthive.operations.inputs import ListAuditInput
from consulthive.operations.results import OperationResult, ok
from consulthive.services.common import service_operation
from consulthive.store.database import Database


class AuditService:
    def __init__(self, database: Database) -> None:
        self._db = database

    @service_operation
    def list(self, principal: Principal, data: ListAuditInput) -> OperationResult[Any]:
        """Audit entries matching the filters, newest first."""
        with self._db.transaction(immediate=False) as uow:
            rows = query_audit_trail(
                uow.conn,
                actor_id=data.actor_id,
                entity_type=data.entity_type,
                entity_id=data.entity_id,
                action=data.action,
                from_date=data.from_date,
                to_date=end_of_day(data.to_date) if data.to_date else None,
                limit=data.limit,
            )
        return ok([AuditLogEntry.model_validate(row) for row in rows])
