# ============================================================
# Ingestion session entities
# ============================================================
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from procurement_sync.domain.audit import AuditEntry
from procurement_sync.domain.requests import Request
from procurement_sync.domain.requests.entities import new_id, utcnow

DocumentTypeLiteral = Literal["contract", "amendment", "purchase_order", "invoice", "unknown"]


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractedData(BaseModel):
    """Structured entities pulled out of a procurement document."""

    document_type: DocumentTypeLiteral = "unknown"
    vendor: Optional[dict[str, Any]] = None
    supplier: Optional[dict[str, Any]] = None
    contract: Optional[dict[str, Any]] = None
    purchase_order: Optional[dict[str, Any]] = None
    expense_lines: list[dict[str, Any]] = Field(default_factory=list)
    purchase_order_lines: list[dict[str, Any]] = Field(default_factory=list)
    # Supplier sys_id found when the vendor was linked to an existing record.
    linked_supplier_sys_id: Optional[str] = None


class IngestionSession(BaseModel):
    id: str = Field(default_factory=new_id)
    file_name: str
    document_type: Optional[DocumentTypeLiteral] = None
    status: SessionStatus = SessionStatus.IN_PROGRESS
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    extracted_data: Optional[ExtractedData] = None
    requests: list[Request] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)

    def find_request(self, request_id: str) -> Request | None:
        return next((r for r in self.requests if r.id == request_id), None)

    def touch(self) -> None:
        self.updated_at = utcnow()


SortOrderLiteral = Literal["asc", "desc"]
SessionSortFieldLiteral = Literal["created_at", "updated_at", "status", "file_name"]


@dataclass(frozen=True)
class SessionFilters:
    status: Optional[str] = None
    document_type: Optional[str] = None


@dataclass(frozen=True)
class Pagination:
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class Sorting:
    sort_by: SessionSortFieldLiteral = "created_at"
    sort_order: SortOrderLiteral = "desc"


@dataclass(frozen=True)
class PageMeta:
    total: int
    limit: int
    offset: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class SessionSummary:
    id: str
    file_name: str
    document_type: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class PageResult:
    data: list[SessionSummary]
    meta: PageMeta
