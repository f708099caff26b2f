"""Convenience class for inserting audit trail entries.

Each method builds a properly structured :class:`AuditEntry` and inserts it
via :func:`insert_audit_entry` on the unit of work's connection, so the entry
commits or rolls back together with the change it records.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from consulthive.audit.models import AuditAction, AuditEntry
from consulthive.audit.store import insert_audit_entry


class AuditLogger:
    """Typed convenience API for inserting audit entries.

    Args:
        conn: The connection of the transaction the entries belong to.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def log(
        self,
        actor_id: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Log an arbitrary action against an entity.

        Returns:
            The row ID of the inserted audit entry.
        """
        entry = AuditEntry(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
        )
        return insert_audit_entry(self._conn, entry)

    def log_transition(
        self,
        actor_id: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        from_state: str,
        to_state: str,
        **extra: Any,
    ) -> int:
        """Log a lifecycle state change.

        Stores from_state and to_state in metadata alongside any extra keys.

        Args:
            actor_id: The user who triggered the change, or None.
            action: The audit action describing the change.
            entity_type: Record type, e.g. ``"Offer"``.
            entity_id: Record identifier.
            from_state: State before the transition.
            to_state: State after the transition.
            **extra: Additional metadata (None values are dropped).

        Returns:
            The row ID of the inserted audit entry.
        """
        metadata: dict[str, Any] = {"from_state": from_state, "to_state": to_state}
        metadata.update({k: v for k, v in extra.items() if v is not None})
        return self.log(actor_id, action, entity_type, entity_id, metadata)

    def log_offer_decision(
        self,
        actor_id: str,
        offer_id: str,
        *,
        withdrawn: bool,
        reason: str | None = None,
    ) -> int:
        """Log a declined or withdrawn offer, recording which party acted.

        Args:
            actor_id: The user who settled the offer.
            offer_id: The offer identifier.
            withdrawn: True when the offering consultant withdrew it.
            reason: Optional free-text reason.

        Returns:
            The row ID of the inserted audit entry.
        """
        action = AuditAction.OFFER_WITHDRAWN if withdrawn else AuditAction.OFFER_DECLINED
        metadata: dict[str, Any] = {"party": "consultant" if withdrawn else "client"}
        if reason is not None:
            metadata["reason"] = reason
        return self.log(actor_id, action, "Offer", offer_id, metadata)

    def log_cancellation(
        self,
        actor_id: str,
        request_id: str,
        from_state: str,
        reason: str | None = None,
    ) -> int:
        """Log a cancelled request with the owner's reason."""
        return self.log_transition(
            actor_id,
            AuditAction.REQUEST_CANCELLED,
            "Request",
            request_id,
            from_state,
            "CANCELLED",
            reason=reason,
        )
