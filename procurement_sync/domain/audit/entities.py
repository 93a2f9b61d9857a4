# ============================================================
# Audit entities
# ============================================================
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from procurement_sync.domain.requests.entities import new_id, utcnow


class AuditAction(str, Enum):
    # Session level
    SESSION_CREATED = "SESSION_CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    DATA_EXTRACTED = "DATA_EXTRACTED"
    REQUESTS_GENERATED = "REQUESTS_GENERATED"

    # Request editing
    REQUEST_ADDED = "REQUEST_ADDED"
    REQUEST_MODIFIED = "REQUEST_MODIFIED"
    REQUEST_REMOVED = "REQUEST_REMOVED"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"

    # Execution
    REQUEST_SUCCESS = "REQUEST_SUCCESS"
    REQUEST_FAILED = "REQUEST_FAILED"
    REQUEST_RETRY_SUCCESS = "REQUEST_RETRY_SUCCESS"
    REQUEST_RETRY_FAILED = "REQUEST_RETRY_FAILED"


class AuditEntry(BaseModel):
    """One immutable line of a session's audit trail."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    session_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    action: str
    details: str
    before_value: Any = None
    after_value: Any = None
