"""HTTP client for the ServiceNow Table API."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from procurement_sync.domain.requests import ApiResponse, ExternalResult, HttpMethod
from procurement_sync.observability.tracing import Span, log_event, new_trace_id

# Messages shown instead of ServiceNow's own error text for common statuses.
FRIENDLY_MESSAGES = {
    401: "API key is invalid or expired. Please check your settings.",
    403: "You lack permissions to access this resource. Required roles may be missing.",
    404: "The requested record or table was not found.",
    409: "A conflict occurred - possible duplicate key or business rule violation.",
    429: "Rate limited. Please wait before making more requests.",
}


class RecordClient(Protocol):
    async def execute(
        self,
        method: HttpMethod | str,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any] | None,
        *,
        trace_id: str | None = None,
    ) -> ApiResponse: ...


class ServiceNowClient:
    """Execute record mutations against a ServiceNow instance.

    HTTP error statuses are returned as data. Transport failures (timeouts,
    refused connections) raise ``httpx.HTTPError`` and are classified by the
    caller.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create a ServiceNow client.

        Args:
            api_key: Value sent in the ``x-sn-apikey`` header.
            timeout: Per-call timeout in seconds.
            client: Optional injected httpx client for testing / transport control.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    @property
    def default_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-sn-apikey": self._api_key,
        }

    async def execute(
        self,
        method: HttpMethod | str,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any] | None,
        *,
        trace_id: str | None = None,
    ) -> ApiResponse:
        """Send one Table API call.

        ``trace_id`` ties the call's span to the caller's batch; a fresh id
        is used when none is given.
        """
        method_name = method.value if isinstance(method, HttpMethod) else str(method).upper()
        merged_headers = {**self.default_headers, **(headers or {})}
        json_body = body if method_name in ("POST", "PATCH", "PUT") else None

        with Span(name="servicenow.call", trace_id=trace_id or new_trace_id()) as span:
            span.set(method=method_name, url=url)
            try:
                resp = await self._send(method_name, url, merged_headers, json_body)
            except httpx.HTTPError as exc:
                span.end()
                log_event(
                    "servicenow.error",
                    trace_id=span.trace_id,
                    span=span,
                    error=str(exc) or type(exc).__name__,
                )
                raise

        span.set(status=resp.status_code)
        log_event("servicenow.call", trace_id=span.trace_id, span=span)
        return self.to_api_response(resp)

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any] | None,
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, headers=headers, json=json_body, timeout=self._timeout)

        async with httpx.AsyncClient() as client:
            return await client.request(method, url, headers=headers, json=json_body, timeout=self._timeout)

    async def test_connection(self, api_base: str) -> bool:
        """Cheap read against sys_user to verify instance URL and key."""
        try:
            response = await self.execute(
                HttpMethod.GET, f"{api_base.rstrip('/')}/table/sys_user?sysparm_limit=1", {}, None
            )
        except httpx.HTTPError:
            return False
        return response.ok

    @classmethod
    def to_api_response(cls, resp: httpx.Response) -> ApiResponse:
        data = cls._decode(resp)
        ok = 200 <= resp.status_code < 300

        return ApiResponse(
            status=resp.status_code,
            status_text=resp.reason_phrase,
            data=data,
            headers=dict(resp.headers),
            error=None if ok else cls._error_message(resp.status_code, data),
            result=ExternalResult(identifier=extract_sys_id(data) if ok else None, raw=data),
        )

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    @staticmethod
    def _error_message(status: int, data: Any) -> str:
        if status in FRIENDLY_MESSAGES:
            return FRIENDLY_MESSAGES[status]

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error = data["error"]
            message = error.get("message") or "An unknown error occurred"
            if error.get("detail"):
                message = f"{message}: {error['detail']}"
            return message

        return "An unknown error occurred"


def extract_sys_id(data: Any) -> str | None:
    """Pull ``result.sys_id`` out of a Table API payload."""
    if not isinstance(data, dict):
        return None
    result = data.get("result")
    if not isinstance(result, dict):
        return None
    sys_id = result.get("sys_id")
    return str(sys_id) if sys_id else None
