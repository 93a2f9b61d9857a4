from __future__ import annotations

import json

import httpx
import pytest
from httpx import MockTransport, Response

from procurement_sync.domain.requests import HttpMethod
from procurement_sync.tools.servicenow_client import ServiceNowClient, extract_sys_id

from tests.fixtures.servicenow_stub import API_BASE, ServiceNowStub


@pytest.mark.anyio
async def test_create_returns_sys_id(stub: ServiceNowStub) -> None:
    # Arrange
    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        client = ServiceNowClient("test-key", client=http)

        # Act
        response = await client.execute(
            HttpMethod.POST, f"{API_BASE}/table/core_company", {}, {"name": "Acme"}
        )

    # Assert
    assert response.ok is True
    assert response.status == 201
    assert response.error is None
    assert response.result.identifier == "core_company-1"
    assert response.data["result"]["name"] == "Acme"


@pytest.mark.anyio
async def test_api_key_header_is_sent() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> Response:
        seen.update(request.headers)
        return Response(status_code=200, json={"result": {"sys_id": "abc"}})

    async with httpx.AsyncClient(transport=MockTransport(handler)) as http:
        client = ServiceNowClient("secret-key", client=http)
        await client.execute("patch", f"{API_BASE}/table/core_company/abc", {"X-Trace": "t1"}, {"name": "A"})

    assert seen["x-sn-apikey"] == "secret-key"
    assert seen["x-trace"] == "t1"
    assert seen["content-type"] == "application/json"


@pytest.mark.anyio
async def test_get_sends_no_body() -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> Response:
        bodies.append(request.content)
        return Response(status_code=200, json={"result": []})

    async with httpx.AsyncClient(transport=MockTransport(handler)) as http:
        client = ServiceNowClient("k", client=http)
        response = await client.execute(HttpMethod.GET, f"{API_BASE}/table/core_company", {}, {"ignored": 1})

    assert bodies == [b""]
    assert response.ok is True
    assert response.result.identifier is None


@pytest.mark.parametrize(
    "status, message",
    [
        (401, "API key is invalid or expired. Please check your settings."),
        (404, "The requested record or table was not found."),
        (429, "Rate limited. Please wait before making more requests."),
    ],
)
@pytest.mark.anyio
async def test_common_statuses_get_friendly_messages(status: int, message: str) -> None:
    stub = ServiceNowStub(failures={"core_company": status})

    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        client = ServiceNowClient("k", client=http)
        response = await client.execute(HttpMethod.POST, f"{API_BASE}/table/core_company", {}, {"name": "A"})

    assert response.ok is False
    assert response.error == message
    assert response.result.identifier is None


@pytest.mark.anyio
async def test_other_errors_use_servicenow_message_and_detail() -> None:
    stub = ServiceNowStub(failures={"ast_contract": 400})

    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        client = ServiceNowClient("k", client=http)
        response = await client.execute(HttpMethod.POST, f"{API_BASE}/table/ast_contract", {}, {})

    assert response.status == 400
    assert response.error == "Operation Failed: ast_contract rejected"
    assert response.failure_reason == response.error


@pytest.mark.anyio
async def test_transport_errors_propagate_and_are_logged(capsys) -> None:
    stub = ServiceNowStub(unreachable={"core_company"})

    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        client = ServiceNowClient("k", client=http)
        with pytest.raises(httpx.ConnectError):
            await client.execute(
                HttpMethod.POST, f"{API_BASE}/table/core_company", {}, {"name": "A"}, trace_id="batch-1"
            )

    [event] = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert event["event"] == "servicenow.error"
    assert event["trace_id"] == "batch-1"
    assert event["error"] == "connection refused"


@pytest.mark.anyio
async def test_connection_check(stub: ServiceNowStub) -> None:
    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        ok = await ServiceNowClient("k", client=http).test_connection(API_BASE)

    stub.unreachable.add("sys_user")
    async with httpx.AsyncClient(transport=MockTransport(stub)) as http:
        unreachable = await ServiceNowClient("k", client=http).test_connection(API_BASE)

    assert ok is True
    assert unreachable is False


def test_extract_sys_id_handles_unexpected_payloads() -> None:
    assert extract_sys_id({"result": {"sys_id": "abc"}}) == "abc"
    assert extract_sys_id({"result": [{"sys_id": "abc"}]}) is None
    assert extract_sys_id({"result": {}}) is None
    assert extract_sys_id("not json") is None
    assert extract_sys_id(None) is None
