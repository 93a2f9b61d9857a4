from __future__ import annotations

from typing import Any, Protocol

from .entities import AuditAction, AuditEntry


class AuditRecorder(Protocol):
    def append(
        self,
        session_id: str,
        action: AuditAction | str,
        details: str,
        before: Any = None,
        after: Any = None,
    ) -> AuditEntry:
        """Append an entry to the session's audit trail"""
        ...

    def entries(self, session_id: str) -> list[AuditEntry]:
        """All entries of a session, oldest first"""
        ...


def build_entry(
    session_id: str,
    action: AuditAction | str,
    details: str,
    before: Any = None,
    after: Any = None,
) -> AuditEntry:
    return AuditEntry(
        session_id=session_id,
        action=action.value if isinstance(action, AuditAction) else action,
        details=details,
        before_value=before,
        after_value=after,
    )


class InMemoryAuditRecorder:
    """Process-local audit trail, one list per session."""

    def __init__(self) -> None:
        self._entries: dict[str, list[AuditEntry]] = {}

    def append(
        self,
        session_id: str,
        action: AuditAction | str,
        details: str,
        before: Any = None,
        after: Any = None,
    ) -> AuditEntry:
        entry = build_entry(session_id, action, details, before, after)
        self._entries.setdefault(session_id, []).append(entry)
        return entry

    def entries(self, session_id: str) -> list[AuditEntry]:
        return list(self._entries.get(session_id, []))
