"""Request records and their lifecycle."""
from .entities import (
    ApiResponse,
    ExternalResult,
    HttpMethod,
    NewRequest,
    Request,
    RequestStatus,
)
from .transitions import REQUEST_STATUS_TRANSITIONS, can_transition, transition
