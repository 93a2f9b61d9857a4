# ============================================================
# Request domain entities
# ============================================================
"""Records describing one pending ServiceNow mutation and its outcome.

A request body is a template: values may be literals or placeholder
strings such as ``{{vendor.sys_id}}`` that are only resolvable once the
referenced record has been created.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILED = "failed"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ExternalResult(BaseModel):
    """Typed view of a ServiceNow response payload.

    ``identifier`` is the created record's sys_id when the payload carried one.
    """

    identifier: str | None = None
    raw: Any = None


class ApiResponse(BaseModel):
    """Outcome of one call against the record system."""

    status: int
    status_text: str = ""
    data: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    error: str | None = None
    result: ExternalResult = Field(default_factory=ExternalResult)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def failure_reason(self) -> str:
        return self.error or self.status_text or f"HTTP {self.status}"


class NewRequest(BaseModel):
    """Fields a caller supplies when adding a request to a session."""

    entity_type: str = Field(min_length=1)
    method: HttpMethod = HttpMethod.POST
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)


class Request(BaseModel):
    """A single pending record mutation."""

    id: str = Field(default_factory=new_id)
    entity_type: str
    method: HttpMethod = HttpMethod.POST
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)
    modified_body: dict[str, Any] | None = None
    depends_on: list[str] = Field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    response: ApiResponse | None = None
    created_at: datetime = Field(default_factory=utcnow)
    executed_at: datetime | None = None

    @classmethod
    def create(cls, new: NewRequest) -> "Request":
        return cls(**new.model_dump())

    @property
    def effective_body(self) -> dict[str, Any]:
        """Body as last sent, falling back to the template."""
        return self.modified_body if self.modified_body is not None else self.body

    @property
    def identifier(self) -> str | None:
        if self.response is None:
            return None
        return self.response.result.identifier
