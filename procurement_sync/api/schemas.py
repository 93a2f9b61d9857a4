from typing import Optional, Generic, List, TypeVar, Any
from enum import Enum

from pydantic import BaseModel, Field

from procurement_sync.domain.sessions import DocumentTypeLiteral, SessionStatus
from procurement_sync.runtime.execution_engine import BatchResult, ExecutionRecord


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class SessionSortField(str, Enum):
    created_at = "created_at"
    updated_at = "updated_at"
    status = "status"
    file_name = "file_name"


class SessionListFilters(BaseModel):
    """
    Query filters for listing ingestion sessions.

    All fields are optional.
    """

    # Filtering
    status: Optional[SessionStatus] = Field(
        default=None,
        description="Filter sessions by status"
    )

    document_type: Optional[DocumentTypeLiteral] = Field(
        default=None,
        description="Filter sessions by detected document type"
    )

    # Pagination
    limit: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Maximum number of records to return (1-100)"
    )

    offset: int = Field(
        default=0,
        ge=0,
        description="Number of records to skip (pagination)"
    )

    # Sorting
    sort_by: SessionSortField = Field(
        default=SessionSortField.created_at,
        description="Field to sort by"
    )
    sort_order: SortOrder = Field(
        default=SortOrder.desc,
        description="Sort order (asc or desc)"
    )


T = TypeVar("T")


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    has_next: bool
    has_previous: bool


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: PaginationMeta


class CreateSessionBody(BaseModel):
    file_name: str = Field(min_length=1, description="Name of the uploaded document")


class SessionStatusBody(BaseModel):
    status: SessionStatus


class UpdateRequestBody(BaseModel):
    body: dict[str, Any] = Field(description="Replacement body template; placeholders allowed")


class ExecutionRecordOut(BaseModel):
    request_id: str
    entity_type: str
    ok: bool
    status: int
    sys_id: Optional[str] = None
    error: Optional[str] = None
    sent_body: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: ExecutionRecord) -> "ExecutionRecordOut":
        return cls(
            request_id=record.request_id,
            entity_type=record.entity_type,
            ok=record.ok,
            status=record.response.status,
            sys_id=record.sys_id,
            error=None if record.ok else record.response.failure_reason,
            sent_body=record.sent_body,
        )


class BatchResultOut(BaseModel):
    trace_id: str
    order: List[str]
    records: List[ExecutionRecordOut]
    skipped: List[str]
    aborted: bool
    paused: bool
    error: Optional[str] = None
    succeeded: int
    failed: int

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResultOut":
        return cls(
            trace_id=result.trace_id,
            order=result.order,
            records=[ExecutionRecordOut.from_record(r) for r in result.records],
            skipped=result.skipped,
            aborted=result.aborted,
            paused=result.paused,
            error=result.error,
            succeeded=result.succeeded,
            failed=result.failed,
        )


class ConnectionStatus(BaseModel):
    ok: bool
    instance_url: str
