"""Append-only audit trail of everything attempted in a session."""
from .entities import AuditAction, AuditEntry
from .recorder import AuditRecorder, InMemoryAuditRecorder, build_entry
