from __future__ import annotations

from typing import Any

from procurement_sync.domain.requests import HttpMethod, Request, RequestStatus
from procurement_sync.tools.tables import table_url

from tests.fixtures.servicenow_stub import API_BASE


def make_request(
    entity_type: str,
    body: dict[str, Any] | None = None,
    depends_on: list[str] | None = None,
    status: RequestStatus = RequestStatus.APPROVED,
    method: HttpMethod = HttpMethod.POST,
) -> Request:
    return Request(
        entity_type=entity_type,
        method=method,
        url=table_url(API_BASE, entity_type),
        headers={},
        body=body if body is not None else {"name": f"{entity_type} record"},
        depends_on=depends_on or [],
        status=status,
    )
