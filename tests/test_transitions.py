from __future__ import annotations

import pytest

from procurement_sync.core.errors import InvalidTransitionError
from procurement_sync.domain.requests import RequestStatus, can_transition, transition

from tests.fixtures.request_factory import make_request


@pytest.mark.parametrize(
    "current, target",
    [
        (RequestStatus.PENDING, RequestStatus.APPROVED),
        (RequestStatus.APPROVED, RequestStatus.PENDING),
        (RequestStatus.PENDING, RequestStatus.EXECUTING),
        (RequestStatus.APPROVED, RequestStatus.EXECUTING),
        (RequestStatus.EXECUTING, RequestStatus.SUCCESS),
        (RequestStatus.EXECUTING, RequestStatus.FAILED),
        (RequestStatus.FAILED, RequestStatus.EXECUTING),
    ],
)
def test_allowed_transitions(current: RequestStatus, target: RequestStatus) -> None:
    assert can_transition(current, target) is True


@pytest.mark.parametrize(
    "current, target",
    [
        (RequestStatus.SUCCESS, RequestStatus.EXECUTING),
        (RequestStatus.SUCCESS, RequestStatus.PENDING),
        (RequestStatus.FAILED, RequestStatus.APPROVED),
        (RequestStatus.PENDING, RequestStatus.SUCCESS),
        (RequestStatus.EXECUTING, RequestStatus.PENDING),
    ],
)
def test_rejected_transitions(current: RequestStatus, target: RequestStatus) -> None:
    request = make_request("vendor", status=current)

    with pytest.raises(InvalidTransitionError) as exc:
        transition(request, target)

    assert exc.value.current == current.value
    assert exc.value.target == target.value
    assert request.status == current


def test_terminal_transition_stamps_execution_time() -> None:
    request = make_request("vendor", status=RequestStatus.EXECUTING)

    previous = transition(request, RequestStatus.FAILED)

    assert previous == RequestStatus.EXECUTING
    assert request.executed_at is not None


def test_approval_toggle_does_not_stamp_execution_time() -> None:
    request = make_request("vendor", status=RequestStatus.PENDING)

    transition(request, RequestStatus.APPROVED)

    assert request.status == RequestStatus.APPROVED
    assert request.executed_at is None
