from __future__ import annotations

from procurement_sync.core.errors import InvalidTransitionError

from .entities import Request, RequestStatus, utcnow

# pending <-> approved is the manual approve/reject toggle. Continue-on-error
# batches run pending requests directly, so pending -> executing is allowed.
REQUEST_STATUS_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.EXECUTING}),
    RequestStatus.APPROVED: frozenset({RequestStatus.PENDING, RequestStatus.EXECUTING}),
    RequestStatus.EXECUTING: frozenset({RequestStatus.SUCCESS, RequestStatus.FAILED}),
    RequestStatus.SUCCESS: frozenset(),
    RequestStatus.FAILED: frozenset({RequestStatus.EXECUTING}),
}

TERMINAL_STATUSES = frozenset({RequestStatus.SUCCESS, RequestStatus.FAILED})


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in REQUEST_STATUS_TRANSITIONS[current]


def transition(request: Request, target: RequestStatus) -> RequestStatus:
    """Move ``request`` to ``target`` and return the previous status.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the move.
    """
    previous = request.status
    if not can_transition(previous, target):
        raise InvalidTransitionError(request.id, previous.value, target.value)

    request.status = target
    if target in TERMINAL_STATUSES:
        request.executed_at = utcnow()
    return previous
