"""Dependency ordering for a batch of requests.

A request waits for every request of each entity type listed in its
``depends_on``. A dependency on an entity type that is absent from the
batch is already satisfied: there is nothing in this batch to wait for.
"""

from __future__ import annotations

from collections import Counter
from typing import Sequence

from procurement_sync.core.errors import DependencyCycleError
from procurement_sync.domain.requests import Request


def sort_requests(requests: Sequence[Request]) -> list[Request]:
    """Order requests so each one follows all requests it depends on.

    Each pass emits, in input order, every remaining request whose
    dependency types were fully emitted before the pass began. Requests
    that become ready in the same pass therefore keep their relative
    input order.

    Raises:
        DependencyCycleError: If a request depends on its own entity type,
            or if no remaining request can make progress.
    """
    for request in requests:
        if request.entity_type in request.depends_on:
            raise DependencyCycleError([request.entity_type])

    # Entity type -> number of requests of that type not yet emitted.
    outstanding = Counter(r.entity_type for r in requests)

    ordered: list[Request] = []
    remaining = list(requests)

    while remaining:
        ready = [r for r in remaining if _is_ready(r, outstanding)]
        if not ready:
            raise DependencyCycleError(_cycle_members(remaining, outstanding))

        ready_ids = {id(r) for r in ready}
        remaining = [r for r in remaining if id(r) not in ready_ids]

        for request in ready:
            outstanding[request.entity_type] -= 1
            ordered.append(request)

    return ordered


def _is_ready(request: Request, outstanding: Counter) -> bool:
    return all(outstanding[dep] == 0 for dep in request.depends_on)


def _cycle_members(remaining: list[Request], outstanding: Counter) -> list[str]:
    """Entity types of stuck requests that wait on other stuck types."""
    stuck_types = {r.entity_type for r in remaining}
    members = {
        r.entity_type
        for r in remaining
        if any(dep in stuck_types and outstanding[dep] > 0 for dep in r.depends_on)
    }
    return sorted(members or stuck_types)
