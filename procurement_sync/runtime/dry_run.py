"""Validate a set of requests without calling ServiceNow."""

from __future__ import annotations

from typing import Sequence

from pydantic import BaseModel, Field

from procurement_sync.core.errors import DependencyCycleError
from procurement_sync.domain.requests import HttpMethod, Request
from procurement_sync.tools.tables import REQUIRED_FIELDS

from .dependency_resolver import sort_requests
from .execution_engine import BATCH_STATUSES
from .placeholders import RESOLVABLE_FIELD, CompletedResults, resolve_body, unresolved_placeholders

class DryRunResult(BaseModel):
    request_id: str
    valid: bool
    errors: list[str] = Field(default_factory=list)


def dry_run(requests: Sequence[Request]) -> list[DryRunResult]:
    """Resolve and validate every request; requests are never mutated.

    Returns one result per input request, in input order.
    """
    if not requests:
        return []

    completed = CompletedResults()
    completed.seed(requests)

    try:
        ordered = sort_requests(requests)
    except DependencyCycleError as exc:
        return [
            DryRunResult(request_id=r.id, valid=False, errors=[str(exc)])
            for r in requests
        ]

    position = {r.id: index for index, r in enumerate(ordered)}
    present_types = {r.entity_type for r in requests}

    results = []
    for request in requests:
        errors = validate_request(request, completed)
        errors.extend(_dependency_errors(request, present_types, completed))
        errors.extend(_placeholder_errors(request, ordered, position, completed))
        results.append(DryRunResult(request_id=request.id, valid=not errors, errors=errors))
    return results


def validate_request(request: Request, completed: CompletedResults) -> list[str]:
    """Structural checks on a single request after resolution."""
    errors: list[str] = []

    if not request.url:
        errors.append("URL is required")

    if not request.method:
        errors.append("HTTP method is required")

    if request.method in (HttpMethod.POST, HttpMethod.PATCH) and not request.body:
        errors.append("Request body is required for POST/PATCH requests")

    body = resolve_body(request.body, completed)
    for name in REQUIRED_FIELDS.get(request.entity_type, []):
        if not body.get(name):
            errors.append(f'Required field "{name}" is missing')

    return errors


def _dependency_errors(
    request: Request,
    present_types: set[str],
    completed: CompletedResults,
) -> list[str]:
    return [
        f"Dependency '{dep}' is not satisfied by any request in the batch or any completed result"
        for dep in request.depends_on
        if dep not in present_types and dep not in completed
    ]


def _placeholder_errors(
    request: Request,
    ordered: list[Request],
    position: dict[str, int],
    completed: CompletedResults,
) -> list[str]:
    errors = []
    body = resolve_body(request.body, completed)
    for name, ref in unresolved_placeholders(body).items():
        if ref.field != RESOLVABLE_FIELD:
            errors.append(f'Field "{name}" references unsupported placeholder {ref.token}')
            continue
        if not _produced_earlier(ref.entity_type, request, ordered, position):
            errors.append(
                f'Field "{name}" contains unresolved placeholder {ref.token}'
            )
    return errors


def _produced_earlier(
    entity_type: str,
    request: Request,
    ordered: list[Request],
    position: dict[str, int],
) -> bool:
    """True if a request of ``entity_type`` runs before ``request`` in the same batch.

    Approved and pending requests run in separate batches, and failed ones
    only through retry, so a producer counts only when it shares the
    consumer's status.
    """
    if request.status not in BATCH_STATUSES:
        return False
    own = position[request.id]
    return any(
        other.entity_type == entity_type
        and other.status == request.status
        and position[other.id] < own
        for other in ordered
    )
