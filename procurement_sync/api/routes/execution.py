from typing import List

from fastapi import APIRouter, Depends

from procurement_sync.api.core.dependencies import get_session_service
from procurement_sync.api.core.errors import http_errors
from procurement_sync.api.schemas import BatchResultOut
from procurement_sync.domain.requests import Request
from procurement_sync.runtime.dry_run import DryRunResult
from procurement_sync.runtime.session_service import SessionService

router = APIRouter(prefix="/sessions/{session_id}", tags=["Execution"])


@router.get(
    "/execution-order",
    summary="Preview execution order",
    description="All requests of the session sorted by their entity-type dependencies.",
    response_model=List[Request],
)
async def execution_order(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    with http_errors():
        return service.execution_order(session_id)


@router.post("/dry-run", response_model=List[DryRunResult])
async def dry_run(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Validate every request without calling ServiceNow."""
    with http_errors():
        return service.dry_run(session_id)


@router.post("/execute/approved", response_model=BatchResultOut)
async def execute_approved(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """
    Execute all approved requests in dependency order.

    Stops at the first failure; the remaining approved requests are left
    untouched. A dependency cycle aborts the batch before any call is made
    and is reported through `aborted` and `error`.
    """
    with http_errors():
        result = await service.execute_approved(session_id)
    return BatchResultOut.from_result(result)


@router.post("/execute/pending", response_model=BatchResultOut)
async def execute_pending(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    """Execute all pending requests in dependency order, continuing past failures."""
    with http_errors():
        result = await service.execute_pending(session_id)
    return BatchResultOut.from_result(result)
