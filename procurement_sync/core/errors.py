# ---------------------------------
# TYPED EXCEPTIONS
# ---------------------------------
from __future__ import annotations

from typing import Iterable


class DependencyCycleError(ValueError):
    """Raised when request dependencies cannot be ordered."""

    def __init__(self, entity_types: Iterable[str]):
        self.entity_types = sorted(set(entity_types))
        super().__init__(
            f"Dependency cycle between entity types: {', '.join(self.entity_types)}"
        )


class InvalidTransitionError(RuntimeError):
    """Raised when a request is moved to a status its lifecycle does not allow."""

    def __init__(self, request_id: str, current: str, target: str):
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(
            f"Request '{request_id}' cannot move from '{current}' to '{target}'"
        )


class SessionNotFoundError(LookupError):
    pass


class RequestNotFoundError(LookupError):
    pass


class RequestBusyError(RuntimeError):
    """Raised when editing or removing a request that is currently executing."""
    pass
