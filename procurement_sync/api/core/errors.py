from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from procurement_sync.core.errors import (
    DependencyCycleError,
    InvalidTransitionError,
    RequestBusyError,
    RequestNotFoundError,
    SessionNotFoundError,
)


@contextmanager
def http_errors() -> Iterator[None]:
    """Translate domain exceptions raised inside a route into HTTP errors."""
    try:
        yield
    except (SessionNotFoundError, RequestNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except (InvalidTransitionError, RequestBusyError) as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except DependencyCycleError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": str(exc), "entity_types": exc.entity_types},
        )
