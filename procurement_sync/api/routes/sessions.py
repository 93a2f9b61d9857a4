from typing import List

from fastapi import APIRouter, Depends, Response

from procurement_sync.api.core.dependencies import get_session_service
from procurement_sync.api.core.errors import http_errors
from procurement_sync.api.schemas import (
    CreateSessionBody,
    PaginatedResponse,
    PaginationMeta,
    SessionListFilters,
    SessionStatusBody,
)
from procurement_sync.domain.audit import AuditEntry
from procurement_sync.domain.requests import Request
from procurement_sync.domain.sessions import (
    ExtractedData,
    IngestionSession,
    Pagination,
    SessionFilters,
    SessionSummary,
    Sorting,
)
from procurement_sync.runtime.session_service import SessionService

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("", status_code=201, response_model=IngestionSession)
async def create_session(
    body: CreateSessionBody,
    service: SessionService = Depends(get_session_service),
):
    """Start a new ingestion session for an uploaded document."""
    return service.create_session(body.file_name)


@router.get(
    "",
    summary="List ingestion sessions",
    description="Returns sessions filtered by status and document type, with pagination.",
    response_model=PaginatedResponse[SessionSummary],
)
async def list_sessions(
    q: SessionListFilters = Depends(),
    service: SessionService = Depends(get_session_service),
):
    """
    List ingestion sessions with optional filters.

    Query Parameters:
    - status: Filter by session status
    - document_type: Filter by detected document type
    - limit: Page size (default: 50)
    - offset: Pagination offset (default: 0)
    """
    filters = SessionFilters(
        status=q.status.value if q.status else None,
        document_type=q.document_type,
    )
    paging = Pagination(limit=q.limit, offset=q.offset)
    sorting = Sorting(sort_by=q.sort_by.value, sort_order=q.sort_order.value)

    page = service.list_sessions(filters=filters, paging=paging, sorting=sorting)

    return PaginatedResponse(
        data=page.data,
        meta=PaginationMeta(
            total=page.meta.total,
            limit=page.meta.limit,
            offset=page.meta.offset,
            has_next=page.meta.has_next,
            has_previous=page.meta.has_previous,
        ),
    )


@router.get("/{session_id}", response_model=IngestionSession)
async def get_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.get_session(session_id)


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Delete a session together with its requests and audit trail."""
    with http_errors():
        service.delete_session(session_id)
    return Response(status_code=204)


@router.put("/{session_id}/status", response_model=IngestionSession)
async def set_session_status(
    session_id: str,
    body: SessionStatusBody,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.set_status(session_id, body.status)


@router.post("/{session_id}/complete", response_model=IngestionSession)
async def complete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.complete_session(session_id)


@router.put("/{session_id}/extracted-data", response_model=IngestionSession)
async def set_extracted_data(
    session_id: str,
    body: ExtractedData,
    service: SessionService = Depends(get_session_service),
):
    """Attach (or replace) the data extracted from the session's document."""
    with http_errors():
        return service.set_extracted_data(session_id, body)


@router.post("/{session_id}/generate-requests", status_code=201, response_model=List[Request])
async def generate_requests(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Queue one pending request per extracted entity, wired by placeholders."""
    with http_errors():
        return service.generate_requests(session_id)


@router.get("/{session_id}/audit-log", response_model=List[AuditEntry])
async def get_audit_log(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.audit_log(session_id)
