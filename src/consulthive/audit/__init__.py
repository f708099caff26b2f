"""Append-only audit trail for irreversible marketplace transitions."""

from consulthive.audit.logger import AuditLogger
from consulthive.audit.models import AuditAction, AuditEntry
from consulthive.audit.store import init_audit_table, insert_audit_entry, query_audit_trail

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditLogger",
    "init_audit_table",
    "insert_audit_entry",
    "query_audit_trail",
]
