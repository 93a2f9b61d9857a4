"""Session-level operations over requests: editing, approval and execution.

This is the glue the dashboard talks to. Every mutation is persisted
through the session repository and recorded in the audit trail; batch
execution itself is delegated to :class:`ExecutionEngine`.
"""

from __future__ import annotations

from typing import Any, Callable

from procurement_sync.config import Settings
from procurement_sync.core.errors import RequestNotFoundError, RequestBusyError
from procurement_sync.domain.audit import AuditAction, AuditRecorder
from procurement_sync.domain.requests import NewRequest, Request, RequestStatus, transition
from procurement_sync.domain.sessions import (
    ExtractedData,
    IngestionSession,
    PageResult,
    Pagination,
    SessionFilters,
    SessionRepository,
    SessionStatus,
    Sorting,
)
from procurement_sync.tools.servicenow_client import RecordClient

from .dependency_resolver import sort_requests
from .dry_run import DryRunResult, dry_run
from .execution_engine import BatchMode, BatchResult, ExecutionEngine, ExecutionRecord
from .request_builder import build_requests

ClientFactory = Callable[[], RecordClient]


class PersistStatusListener:
    """Writes each status change through immediately so observers see it."""

    def __init__(self, repository: SessionRepository, session_id: str) -> None:
        self._repository = repository
        self._session_id = session_id

    def on_status_change(self, request: Request, previous: RequestStatus) -> None:
        self._repository.save_request(self._session_id, request)


class SessionService:
    def __init__(
        self,
        *,
        repository: SessionRepository,
        recorder: AuditRecorder,
        client_factory: ClientFactory,
        settings: Settings,
    ) -> None:
        self._repo = repository
        self._recorder = recorder
        self._client_factory = client_factory
        self._settings = settings

    # -----------------------------------------
    # Sessions
    # -----------------------------------------

    def create_session(self, file_name: str) -> IngestionSession:
        session = IngestionSession(file_name=file_name)
        self._repo.create(session)
        self._recorder.append(session.id, AuditAction.SESSION_CREATED, f"Session created for file: {file_name}")
        return self._repo.get(session.id)

    def get_session(self, session_id: str) -> IngestionSession:
        return self._repo.get(session_id)

    def list_sessions(self, filters: SessionFilters, paging: Pagination, sorting: Sorting) -> PageResult:
        return self._repo.get_all(filters=filters, paging=paging, sorting=sorting)

    def delete_session(self, session_id: str) -> None:
        self._repo.delete(session_id)

    def set_status(self, session_id: str, status: SessionStatus) -> IngestionSession:
        session = self._repo.get(session_id)
        session.status = status
        session.touch()
        self._repo.save(session)
        self._recorder.append(session_id, AuditAction.STATUS_CHANGED, f"Session status changed to: {status.value}")
        return self._repo.get(session_id)

    def complete_session(self, session_id: str) -> IngestionSession:
        self.set_status(session_id, SessionStatus.COMPLETED)
        self._recorder.append(session_id, AuditAction.SESSION_COMPLETED, "Session marked as completed")
        return self._repo.get(session_id)

    def set_extracted_data(self, session_id: str, data: ExtractedData) -> IngestionSession:
        session = self._repo.get(session_id)
        session.extracted_data = data
        session.document_type = data.document_type
        session.touch()
        self._repo.save(session)

        entity_count = sum(
            1 for part in (data.vendor, data.supplier, data.contract, data.purchase_order) if part
        ) + len(data.expense_lines) + len(data.purchase_order_lines)
        self._recorder.append(session_id, AuditAction.DATA_EXTRACTED, f"Extracted {entity_count} entities")
        return self._repo.get(session_id)

    def generate_requests(self, session_id: str) -> list[Request]:
        """Build requests from the session's extracted data and queue them."""
        session = self._repo.get(session_id)
        if session.extracted_data is None:
            return []

        created = [
            self._append_request(session, new)
            for new in build_requests(session.extracted_data, self._settings)
        ]
        session.touch()
        self._repo.save(session)

        for request in created:
            self._record_added(session_id, request)
        if created:
            self._recorder.append(
                session_id,
                AuditAction.REQUESTS_GENERATED,
                f"Generated {len(created)} API requests from extracted data",
            )
        return created

    def audit_log(self, session_id: str):
        self._repo.get(session_id)
        return self._recorder.entries(session_id)

    # -----------------------------------------
    # Requests
    # -----------------------------------------

    def add_request(self, session_id: str, new: NewRequest) -> Request:
        session = self._repo.get(session_id)
        request = self._append_request(session, new)
        session.touch()
        self._repo.save(session)
        self._record_added(session_id, request)
        return request

    def update_body(self, session_id: str, request_id: str, body: dict[str, Any]) -> Request:
        """Replace a request's body template.

        The previous resolved body is discarded so the next execution
        resolves from the edited template.
        """
        session, request = self._load(session_id, request_id)
        if request.status == RequestStatus.EXECUTING:
            raise RequestBusyError(f"Request '{request_id}' is executing and cannot be edited")

        before = request.body
        request.body = dict(body)
        request.modified_body = None
        session.touch()
        self._repo.save(session)
        self._recorder.append(
            session_id,
            AuditAction.REQUEST_MODIFIED,
            f"Modified request body for {request.entity_type}",
            before,
            request.body,
        )
        return request

    def remove_request(self, session_id: str, request_id: str) -> None:
        session, request = self._load(session_id, request_id)
        if request.status == RequestStatus.EXECUTING:
            raise RequestBusyError(f"Request '{request_id}' is executing and cannot be removed")

        session.requests = [r for r in session.requests if r.id != request_id]
        session.touch()
        self._repo.save(session)
        self._recorder.append(
            session_id,
            AuditAction.REQUEST_REMOVED,
            f"Removed {request.method.value} request for {request.entity_type}",
        )

    def approve(self, session_id: str, request_id: str) -> Request:
        return self._toggle_approval(session_id, request_id, RequestStatus.APPROVED)

    def reject(self, session_id: str, request_id: str) -> Request:
        return self._toggle_approval(session_id, request_id, RequestStatus.PENDING)

    def approve_all(self, session_id: str) -> list[Request]:
        session = self._repo.get(session_id)
        approved = []
        for request in session.requests:
            if request.status == RequestStatus.PENDING:
                transition(request, RequestStatus.APPROVED)
                approved.append(request)

        if approved:
            session.touch()
            self._repo.save(session)
            for request in approved:
                self._recorder.append(
                    session_id,
                    AuditAction.REQUEST_APPROVED,
                    f"Approved {request.method.value} request for {request.entity_type}",
                )
        return approved

    # -----------------------------------------
    # Execution
    # -----------------------------------------

    def execution_order(self, session_id: str) -> list[Request]:
        return sort_requests(self._repo.get(session_id).requests)

    def dry_run(self, session_id: str) -> list[DryRunResult]:
        return dry_run(self._repo.get(session_id).requests)

    async def execute_approved(self, session_id: str) -> BatchResult:
        """Run every approved request, stopping at the first failure."""
        return await self._execute(session_id, RequestStatus.APPROVED, BatchMode.APPROVED)

    async def execute_pending(self, session_id: str) -> BatchResult:
        """Run every pending request, continuing past failures."""
        return await self._execute(session_id, RequestStatus.PENDING, BatchMode.PENDING)

    async def retry(self, session_id: str, request_id: str) -> ExecutionRecord:
        session, request = self._load(session_id, request_id)
        engine = self._engine(session)
        record = await engine.retry(request)
        self._repo.save_request(session_id, request)
        self._repo.touch(session_id)
        return record

    async def _execute(self, session_id: str, status: RequestStatus, mode: BatchMode) -> BatchResult:
        # Materialise the batch from current statuses at run time.
        session = self._repo.get(session_id)
        batch = [r for r in session.requests if r.status == status]

        engine = self._engine(session)
        result = await engine.run_batch(batch, mode=mode)

        # Requests are persisted one at a time by the status listener; only
        # the session row is bumped here.
        self._repo.touch(session_id)
        return result

    def _engine(self, session: IngestionSession) -> ExecutionEngine:
        engine = ExecutionEngine(
            client=self._client_factory(),
            recorder=self._recorder,
            session_id=session.id,
            listeners=[PersistStatusListener(self._repo, session.id)],
        )
        engine.seed(session.requests)
        return engine

    # -----------------------------------------
    # Helpers
    # -----------------------------------------

    def _append_request(self, session: IngestionSession, new: NewRequest) -> Request:
        request = Request.create(new)
        session.requests.append(request)
        return request

    def _record_added(self, session_id: str, request: Request) -> None:
        self._recorder.append(
            session_id,
            AuditAction.REQUEST_ADDED,
            f"Added {request.method.value} request for {request.entity_type}",
        )

    def _toggle_approval(self, session_id: str, request_id: str, target: RequestStatus) -> Request:
        session, request = self._load(session_id, request_id)
        transition(request, target)
        session.touch()
        self._repo.save(session)

        action = AuditAction.REQUEST_APPROVED if target == RequestStatus.APPROVED else AuditAction.REQUEST_REJECTED
        verb = "Approved" if target == RequestStatus.APPROVED else "Rejected"
        self._recorder.append(
            session_id,
            action,
            f"{verb} {request.method.value} request for {request.entity_type}",
        )
        return request

    def _load(self, session_id: str, request_id: str) -> tuple[IngestionSession, Request]:
        session = self._repo.get(session_id)
        request = session.find_request(request_id)
        if request is None:
            raise RequestNotFoundError(f"Request '{request_id}' not found in session '{session_id}'")
        return session, request
