from fastapi import Depends
from sqlalchemy.orm import Session

from procurement_sync.api.core.container import Container, get_container
from procurement_sync.db import get_db
from procurement_sync.domain.audit.repository import SqlAuditRecorder
from procurement_sync.domain.sessions import SessionRepository
from procurement_sync.runtime.session_service import SessionService


def get_session_service(
    db: Session = Depends(get_db),
    container: Container = Depends(get_container),
) -> SessionService:
    return SessionService(
        repository=SessionRepository(db),
        recorder=SqlAuditRecorder(db),
        client_factory=container.servicenow_client,
        settings=container.settings,
    )
