# ============================================================
# DB access layer
# ============================================================
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_sync.db.models import AuditEntryRecord
from .entities import AuditAction, AuditEntry
from .recorder import build_entry


class SqlAuditRecorder:
    """Audit trail persisted in the ``audit_entries`` table.

    Entries are only ever inserted; ordering follows insertion.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
            self,
            session_id: str,
            action: AuditAction | str,
            details: str,
            before: Any = None,
            after: Any = None,
    ) -> AuditEntry:
        """Insert a new audit entry"""
        entry = build_entry(session_id, action, details, before, after)
        self.db.add(AuditEntryRecord(
            id=entry.id,
            session_id=entry.session_id,
            timestamp=entry.timestamp,
            action=entry.action,
            details=entry.details,
            before_value=entry.before_value,
            after_value=entry.after_value,
        ))
        self.db.commit()
        return entry

    def entries(self, session_id: str) -> list[AuditEntry]:
        """Get a session's entries, oldest first"""
        query = (
            select(AuditEntryRecord)
            .where(AuditEntryRecord.session_id == session_id)
            .order_by(AuditEntryRecord.seq)
        )
        return [to_entry(row) for row in self.db.scalars(query)]


def to_entry(row: AuditEntryRecord) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        session_id=row.session_id,
        timestamp=row.timestamp,
        action=row.action,
        details=row.details,
        before_value=row.before_value,
        after_value=row.after_value,
    )
