from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Protocol, Sequence

from procurement_sync.core.errors import DependencyCycleError, InvalidTransitionError
from procurement_sync.domain.audit import AuditAction, AuditRecorder
from procurement_sync.domain.requests import (
    ApiResponse,
    ExternalResult,
    Request,
    RequestStatus,
    transition,
)
from procurement_sync.observability.tracing import Span, log_event, new_trace_id
from procurement_sync.tools.servicenow_client import RecordClient

from .dependency_resolver import sort_requests
from .placeholders import CompletedResults, resolve_body

# Batches only pick up requests that have not run yet; failed requests go
# through retry.
BATCH_STATUSES = frozenset({RequestStatus.PENDING, RequestStatus.APPROVED})

INTERRUPTED_ERROR = "Execution interrupted"


class ExecutionListener(Protocol):
    def on_status_change(self, request: Request, previous: RequestStatus) -> None: ...


@dataclass(frozen=True)
class BatchMode:
    stop_on_error: bool

    # "Execute all approved" halts on the first failure, "execute all
    # pending" keeps going.
    APPROVED: ClassVar["BatchMode"]
    PENDING: ClassVar["BatchMode"]


BatchMode.APPROVED = BatchMode(stop_on_error=True)
BatchMode.PENDING = BatchMode(stop_on_error=False)


@dataclass(frozen=True)
class ExecutionRecord:
    """Outcome of executing one request."""
    request_id: str
    entity_type: str
    ok: bool
    response: ApiResponse
    sys_id: str | None = None
    sent_body: dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchResult:
    trace_id: str
    order: list[str] = field(default_factory=list)
    records: list[ExecutionRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    aborted: bool = False
    paused: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.aborted and all(r.ok for r in self.records)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.records if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.records if not r.ok)


class ExecutionEngine:
    """
    Executes a dependency-ordered batch of record mutations.

    Responsibilities:
    - Order requests by declared entity-type dependencies
    - Resolve placeholders immediately before each call
    - Drive each request through its status lifecycle
    - Classify responses and record identifiers for later requests
    - Append audit entries for every outcome
    - Honour stop-on-error / continue-on-error and pause

    Non-responsibilities:
    - Choosing which requests form the batch
    - Transport-level retries or timeouts (the client owns those)
    - Persistence (listeners observe status changes)

    Calls are strictly sequential: a request may need the identifier the
    previous one just produced.
    """

    def __init__(
        self,
        *,
        client: RecordClient,
        recorder: AuditRecorder,
        session_id: str,
        listeners: Iterable[ExecutionListener] = (),
    ) -> None:
        self._client = client
        self._recorder = recorder
        self._session_id = session_id
        self._listeners = list(listeners)
        self._completed = CompletedResults()
        self._pause_requested = False

    @property
    def completed(self) -> CompletedResults:
        return self._completed

    def seed(self, requests: Iterable[Request]) -> None:
        """Make identifiers of earlier successful requests resolvable."""
        self._completed.seed(requests)

    def add_listener(self, listener: ExecutionListener) -> None:
        self._listeners.append(listener)

    def pause(self) -> None:
        """Stop before the next request starts. An in-flight call is not aborted."""
        self._pause_requested = True

    def resume(self) -> None:
        self._pause_requested = False

    @property
    def paused(self) -> bool:
        return self._pause_requested

    async def run_batch(self, requests: Sequence[Request], *, mode: BatchMode) -> BatchResult:
        """
        Execute ``requests`` in dependency order.

        A dependency cycle, or a request that is not pending or approved,
        aborts the batch before any call is made. Each per-request failure
        is captured on the request and in the audit trail; with
        ``mode.stop_on_error`` the remaining requests keep their current
        status.
        """
        trace_id = new_trace_id()
        result = BatchResult(trace_id=trace_id)

        blocked = [r for r in requests if r.status not in BATCH_STATUSES]
        if blocked:
            listed = ", ".join(f"{r.id} ({r.status.value})" for r in blocked)
            return self._abort(
                result, requests, f"Requests cannot be executed from their current status: {listed}"
            )

        try:
            ordered = sort_requests(requests)
        except DependencyCycleError as exc:
            return self._abort(result, requests, str(exc))

        result.order = [r.id for r in ordered]
        batch_span = Span(name="batch", trace_id=trace_id)
        log_event(
            "batch.start",
            trace_id=trace_id,
            session_id=self._session_id,
            size=len(ordered),
            stop_on_error=mode.stop_on_error,
        )

        for index, request in enumerate(ordered):
            if self._pause_requested:
                result.paused = True
                result.skipped = [r.id for r in ordered[index:]]
                log_event("batch.paused", trace_id=trace_id, remaining=len(result.skipped))
                break

            record = await self._execute(request, trace_id=trace_id, retry=False)
            result.records.append(record)

            if not record.ok and mode.stop_on_error:
                result.skipped = [r.id for r in ordered[index + 1:]]
                break

        batch_span.end()
        log_event(
            "batch.end",
            trace_id=trace_id,
            span=batch_span,
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=len(result.skipped),
        )
        return result

    async def retry(self, request: Request) -> ExecutionRecord:
        """
        Re-execute a single failed request.

        The body is re-resolved from the original template against the
        latest completed results. The dependency sort is not consulted.
        """
        if request.status != RequestStatus.FAILED:
            raise InvalidTransitionError(request.id, request.status.value, RequestStatus.EXECUTING.value)

        trace_id = new_trace_id()
        log_event("request.retry", trace_id=trace_id, request_id=request.id, entity_type=request.entity_type)
        return await self._execute(request, trace_id=trace_id, retry=True)

    def _abort(self, result: BatchResult, requests: Sequence[Request], error: str) -> BatchResult:
        result.aborted = True
        result.error = error
        result.skipped = [r.id for r in requests]
        log_event("batch.aborted", trace_id=result.trace_id, session_id=self._session_id, error=error)
        return result

    async def _execute(self, request: Request, *, trace_id: str, retry: bool) -> ExecutionRecord:
        resolved = resolve_body(request.body, self._completed)
        span = Span(name=f"request.{request.entity_type}", trace_id=trace_id)
        span.set(request_id=request.id, method=request.method.value)

        try:
            self._set_status(request, RequestStatus.EXECUTING)
            log_event("request.start", trace_id=trace_id, request_id=request.id, entity_type=request.entity_type)

            with span:
                response = await self._call(request, resolved, trace_id=trace_id)

            if response.ok:
                record = self._on_success(request, response, resolved, retry=retry)
            else:
                record = self._on_failure(request, response, resolved, retry=retry)
        except BaseException:
            # A request must not stay in executing once this call unwinds.
            if request.status == RequestStatus.EXECUTING:
                span.end()
                self._on_failure(
                    request,
                    ApiResponse(status=500, status_text="Internal Error", error=INTERRUPTED_ERROR),
                    resolved,
                    retry=retry,
                )
                log_event("request.interrupted", trace_id=trace_id, span=span, request_id=request.id)
            raise

        log_event(
            "request.end",
            trace_id=trace_id,
            span=span,
            request_id=request.id,
            ok=record.ok,
            status=response.status,
        )
        return record

    async def _call(self, request: Request, resolved: dict[str, Any], *, trace_id: str) -> ApiResponse:
        try:
            return await self._client.execute(
                request.method, request.url, request.headers, resolved, trace_id=trace_id
            )
        except Exception as exc:  # noqa: BLE001 - any client failure is a request failure
            return ApiResponse(
                status=500,
                status_text="Internal Error",
                error=str(exc) or type(exc).__name__,
            )

    def _on_success(
        self,
        request: Request,
        response: ApiResponse,
        resolved: dict[str, Any],
        *,
        retry: bool,
    ) -> ExecutionRecord:
        sys_id = response.result.identifier
        self._completed.record(request.entity_type, ExternalResult(identifier=sys_id, raw=response.data))

        request.response = response
        request.modified_body = resolved
        self._set_status(request, RequestStatus.SUCCESS)

        if retry:
            action, details = AuditAction.REQUEST_RETRY_SUCCESS, f"Retry successful. sys_id: {sys_id or 'N/A'}"
        else:
            action, details = AuditAction.REQUEST_SUCCESS, f"Request completed successfully. sys_id: {sys_id or 'N/A'}"
        self._recorder.append(self._session_id, action, details)

        return ExecutionRecord(
            request_id=request.id,
            entity_type=request.entity_type,
            ok=True,
            response=response,
            sys_id=sys_id,
            sent_body=resolved,
        )

    def _on_failure(
        self,
        request: Request,
        response: ApiResponse,
        resolved: dict[str, Any],
        *,
        retry: bool,
    ) -> ExecutionRecord:
        request.response = response
        request.modified_body = resolved
        self._set_status(request, RequestStatus.FAILED)

        reason = response.failure_reason
        if retry:
            action, details = AuditAction.REQUEST_RETRY_FAILED, f"Retry failed: {reason}"
        else:
            action, details = AuditAction.REQUEST_FAILED, f"Request failed: {reason}"
        self._recorder.append(self._session_id, action, details)

        return ExecutionRecord(
            request_id=request.id,
            entity_type=request.entity_type,
            ok=False,
            response=response,
            sent_body=resolved,
        )

    def _set_status(self, request: Request, status: RequestStatus) -> None:
        previous = transition(request, status)
        for listener in self._listeners:
            listener.on_status_change(request, previous)
