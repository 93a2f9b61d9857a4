from __future__ import annotations

import httpx
import pytest
from httpx import MockTransport

from procurement_sync.core.errors import (
    InvalidTransitionError,
    RequestBusyError,
    RequestNotFoundError,
    SessionNotFoundError,
)
from procurement_sync.domain.audit import AuditAction
from procurement_sync.domain.audit.repository import SqlAuditRecorder
from procurement_sync.domain.requests import NewRequest, RequestStatus
from procurement_sync.domain.sessions import (
    ExtractedData,
    Pagination,
    SessionFilters,
    SessionRepository,
    SessionStatus,
    Sorting,
)
from procurement_sync.runtime.session_service import SessionService
from procurement_sync.tools.servicenow_client import ServiceNowClient

from tests.fixtures.servicenow_stub import API_BASE, ServiceNowStub

EXTRACTED = ExtractedData(
    document_type="contract",
    vendor={"name": "Acme"},
    supplier={"name": "Acme Supply"},
)


@pytest.fixture
def service(db, settings, stub: ServiceNowStub) -> SessionService:
    return SessionService(
        repository=SessionRepository(db),
        recorder=SqlAuditRecorder(db),
        client_factory=lambda: ServiceNowClient(
            "test-key", client=httpx.AsyncClient(transport=MockTransport(stub))
        ),
        settings=settings,
    )


def _actions(service: SessionService, session_id: str) -> list[str]:
    return [entry.action for entry in service.audit_log(session_id)]


def _session_with_requests(service: SessionService) -> str:
    session = service.create_session("acme-contract.pdf")
    service.set_extracted_data(session.id, EXTRACTED)
    service.generate_requests(session.id)
    return session.id


def test_create_session_is_audited(service: SessionService) -> None:
    session = service.create_session("acme-contract.pdf")

    loaded = service.get_session(session.id)
    assert loaded.file_name == "acme-contract.pdf"
    assert loaded.status == SessionStatus.IN_PROGRESS
    assert [e.action for e in loaded.audit_log] == [AuditAction.SESSION_CREATED.value]
    assert loaded.audit_log[0].details == "Session created for file: acme-contract.pdf"


def test_unknown_session_raises(service: SessionService) -> None:
    with pytest.raises(SessionNotFoundError):
        service.get_session("missing")


def test_generate_requests_queues_pending_requests(service: SessionService) -> None:
    session_id = _session_with_requests(service)

    session = service.get_session(session_id)
    assert session.document_type == "contract"
    assert [r.entity_type for r in session.requests] == ["vendor", "supplier"]
    assert all(r.status == RequestStatus.PENDING for r in session.requests)
    assert _actions(service, session_id) == [
        AuditAction.SESSION_CREATED.value,
        AuditAction.DATA_EXTRACTED.value,
        AuditAction.REQUEST_ADDED.value,
        AuditAction.REQUEST_ADDED.value,
        AuditAction.REQUESTS_GENERATED.value,
    ]
    assert service.audit_log(session_id)[1].details == "Extracted 2 entities"


def test_body_edit_is_audited_with_before_and_after(service: SessionService) -> None:
    session_id = _session_with_requests(service)
    vendor = service.get_session(session_id).requests[0]

    updated = service.update_body(session_id, vendor.id, {"name": "Acme Corporation"})

    assert updated.body == {"name": "Acme Corporation"}
    assert updated.modified_body is None
    assert updated.effective_body == {"name": "Acme Corporation"}
    entry = service.audit_log(session_id)[-1]
    assert entry.action == AuditAction.REQUEST_MODIFIED.value
    assert entry.before_value["name"] == "Acme"
    assert entry.after_value == {"name": "Acme Corporation"}
    assert service.get_session(session_id).requests[0].body == {"name": "Acme Corporation"}


def test_removing_executing_request_is_refused(service: SessionService, db) -> None:
    session_id = _session_with_requests(service)
    repository = SessionRepository(db)
    session = repository.get(session_id)
    session.requests[0].status = RequestStatus.EXECUTING
    repository.save(session)

    with pytest.raises(RequestBusyError):
        service.remove_request(session_id, session.requests[0].id)

    assert len(service.get_session(session_id).requests) == 2


def test_remove_request(service: SessionService) -> None:
    session_id = _session_with_requests(service)
    supplier = service.get_session(session_id).requests[1]

    service.remove_request(session_id, supplier.id)

    assert [r.entity_type for r in service.get_session(session_id).requests] == ["vendor"]
    assert service.audit_log(session_id)[-1].details == "Removed POST request for supplier"

    with pytest.raises(RequestNotFoundError):
        service.remove_request(session_id, supplier.id)


def test_approve_and_reject(service: SessionService) -> None:
    session_id = _session_with_requests(service)
    vendor = service.get_session(session_id).requests[0]

    assert service.approve(session_id, vendor.id).status == RequestStatus.APPROVED
    assert service.reject(session_id, vendor.id).status == RequestStatus.PENDING
    assert _actions(service, session_id)[-2:] == [
        AuditAction.REQUEST_APPROVED.value,
        AuditAction.REQUEST_REJECTED.value,
    ]

    with pytest.raises(InvalidTransitionError):
        service.reject(session_id, vendor.id)


def test_approve_all_only_touches_pending(service: SessionService) -> None:
    session_id = _session_with_requests(service)
    vendor = service.get_session(session_id).requests[0]
    service.approve(session_id, vendor.id)

    approved = service.approve_all(session_id)

    assert [r.entity_type for r in approved] == ["supplier"]
    assert all(r.status == RequestStatus.APPROVED for r in service.get_session(session_id).requests)


@pytest.mark.anyio
async def test_execute_approved_leaves_pending_requests_untouched(
    service: SessionService, stub: ServiceNowStub
) -> None:
    session_id = _session_with_requests(service)
    vendor, supplier = service.get_session(session_id).requests
    service.approve(session_id, vendor.id)

    result = await service.execute_approved(session_id)

    assert result.order == [vendor.id]
    session = service.get_session(session_id)
    assert session.requests[0].status == RequestStatus.SUCCESS
    assert session.requests[0].identifier == "core_company-1"
    assert session.requests[1].status == RequestStatus.PENDING
    assert len(stub.calls) == 1
    assert _actions(service, session_id)[-1] == AuditAction.REQUEST_SUCCESS.value


@pytest.mark.anyio
async def test_later_batch_resolves_from_persisted_results(
    service: SessionService, stub: ServiceNowStub
) -> None:
    session_id = _session_with_requests(service)
    vendor = service.get_session(session_id).requests[0]
    service.approve(session_id, vendor.id)
    await service.execute_approved(session_id)

    result = await service.execute_pending(session_id)

    assert result.ok is True
    [supplier_body] = stub.bodies_for("sn_fin_supplier")
    assert supplier_body["u_vendor"] == "core_company-1"
    supplier = service.get_session(session_id).requests[1]
    assert supplier.status == RequestStatus.SUCCESS
    assert supplier.body["u_vendor"] == "{{vendor.sys_id}}"
    assert supplier.modified_body["u_vendor"] == "core_company-1"


@pytest.mark.anyio
async def test_retry_persists_outcome(service: SessionService, stub: ServiceNowStub) -> None:
    stub.failures["core_company"] = 500
    session_id = _session_with_requests(service)
    await service.execute_pending(session_id)
    vendor = service.get_session(session_id).requests[0]
    assert vendor.status == RequestStatus.FAILED

    del stub.failures["core_company"]
    record = await service.retry(session_id, vendor.id)

    assert record.ok is True
    assert service.get_session(session_id).requests[0].status == RequestStatus.SUCCESS
    assert _actions(service, session_id)[-1] == AuditAction.REQUEST_RETRY_SUCCESS.value


def test_execution_order_and_dry_run(service: SessionService) -> None:
    session = service.create_session("manual.pdf")
    supplier = service.add_request(session.id, NewRequest(
        entity_type="supplier",
        url=f"{API_BASE}/table/sn_fin_supplier",
        body={"name": "S", "u_vendor": "{{vendor.sys_id}}"},
        depends_on=["vendor"],
    ))
    vendor = service.add_request(session.id, NewRequest(
        entity_type="vendor",
        url=f"{API_BASE}/table/core_company",
        body={"name": "V"},
    ))

    assert [r.id for r in service.execution_order(session.id)] == [vendor.id, supplier.id]
    assert all(r.valid for r in service.dry_run(session.id))


def test_complete_and_list_sessions(service: SessionService) -> None:
    first = service.create_session("a.pdf")
    service.create_session("b.pdf")
    service.complete_session(first.id)

    page = service.list_sessions(
        SessionFilters(status="completed"), Pagination(limit=10, offset=0), Sorting()
    )

    assert page.meta.total == 1
    assert [s.id for s in page.data] == [first.id]
    assert _actions(service, first.id)[-2:] == [
        AuditAction.STATUS_CHANGED.value,
        AuditAction.SESSION_COMPLETED.value,
    ]


def test_delete_session_removes_audit_log(service: SessionService, db) -> None:
    session_id = _session_with_requests(service)

    service.delete_session(session_id)

    with pytest.raises(SessionNotFoundError):
        service.get_session(session_id)
    assert SqlAuditRecorder(db).entries(session_id) == []


@pytest.mark.anyio
async def test_request_added_during_batch_survives(
    service: SessionService, db, settings, stub: ServiceNowStub
) -> None:
    session_id = _session_with_requests(service)
    vendor = service.get_session(session_id).requests[0]
    service.approve(session_id, vendor.id)
    other = SessionService(
        repository=SessionRepository(db),
        recorder=SqlAuditRecorder(db),
        client_factory=lambda: None,
        settings=settings,
    )
    added: list[str] = []

    class AddsWhileCalling:
        def __init__(self) -> None:
            self._inner = ServiceNowClient(
                "test-key", client=httpx.AsyncClient(transport=MockTransport(stub))
            )

        async def execute(self, method, url, headers, body, *, trace_id=None):
            asset = other.add_request(session_id, NewRequest(
                entity_type="asset",
                url=f"{API_BASE}/table/alm_asset",
                body={"display_name": "Laptop"},
            ))
            added.append(asset.id)
            return await self._inner.execute(method, url, headers, body, trace_id=trace_id)

    racing = SessionService(
        repository=SessionRepository(db),
        recorder=SqlAuditRecorder(db),
        client_factory=AddsWhileCalling,
        settings=settings,
    )

    result = await racing.execute_approved(session_id)

    assert result.ok is True
    session = service.get_session(session_id)
    assert added[0] in [r.id for r in session.requests]
    assert session.requests[0].status == RequestStatus.SUCCESS
    assert _actions(service, session_id)[-1] == AuditAction.REQUEST_SUCCESS.value
