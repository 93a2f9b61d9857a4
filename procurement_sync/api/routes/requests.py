from typing import List

from fastapi import APIRouter, Depends, Response

from procurement_sync.api.core.dependencies import get_session_service
from procurement_sync.api.core.errors import http_errors
from procurement_sync.api.schemas import ExecutionRecordOut, UpdateRequestBody
from procurement_sync.domain.requests import NewRequest, Request
from procurement_sync.runtime.session_service import SessionService

router = APIRouter(prefix="/sessions/{session_id}/requests", tags=["Requests"])


@router.post("", status_code=201, response_model=Request)
async def add_request(
    session_id: str,
    body: NewRequest,
    service: SessionService = Depends(get_session_service),
):
    """Queue a hand-written request in the pending state."""
    with http_errors():
        return service.add_request(session_id, body)


@router.post("/approve-all", response_model=List[Request])
async def approve_all(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Approve every pending request. Returns the requests that changed."""
    with http_errors():
        return service.approve_all(session_id)


@router.patch("/{request_id}", response_model=Request)
async def update_request_body(
    session_id: str,
    request_id: str,
    body: UpdateRequestBody,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.update_body(session_id, request_id, body.body)


@router.delete("/{request_id}", status_code=204)
async def remove_request(
    session_id: str,
    request_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        service.remove_request(session_id, request_id)
    return Response(status_code=204)


@router.post("/{request_id}/approve", response_model=Request)
async def approve_request(
    session_id: str,
    request_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.approve(session_id, request_id)


@router.post("/{request_id}/reject", response_model=Request)
async def reject_request(
    session_id: str,
    request_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Move an approved request back to pending."""
    with http_errors():
        return service.reject(session_id, request_id)


@router.post("/{request_id}/retry", response_model=ExecutionRecordOut)
async def retry_request(
    session_id: str,
    request_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Re-execute a failed request on its own, outside any batch."""
    with http_errors():
        record = await service.retry(session_id, request_id)
    return ExecutionRecordOut.from_record(record)
