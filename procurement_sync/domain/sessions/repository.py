# ============================================================
# DB access layer
# ============================================================
from typing import Protocol

from sqlalchemy import DateTime, text
from sqlalchemy.orm import Session

from procurement_sync.core.errors import RequestNotFoundError, SessionNotFoundError
from procurement_sync.db.models import RequestRecord, SessionRecord
from procurement_sync.domain.audit.repository import to_entry
from procurement_sync.domain.requests import Request
from procurement_sync.domain.requests.entities import utcnow
from .entities import (
    ExtractedData,
    IngestionSession,
    PageMeta,
    PageResult,
    Pagination,
    SessionFilters,
    SessionStatus,
    SessionSummary,
    Sorting,
)


class SessionRepositoryProtocol(Protocol):
    def create(self, session: IngestionSession) -> None:
        """Persist a new session"""
        ...

    def get(self, session_id: str) -> IngestionSession:
        """Get a session with its requests and audit log"""
        ...

    def save(self, session: IngestionSession) -> None:
        """Persist session fields and its full request list"""
        ...

    def save_request(self, session_id: str, request: Request) -> None:
        """Persist a single request snapshot"""
        ...

    def touch(self, session_id: str) -> None:
        """Bump a session's updated_at without rewriting its requests"""
        ...

    def delete(self, session_id: str) -> None:
        """Delete a session, its requests and its audit log"""
        ...


class SessionRepository(SessionRepositoryProtocol):
    # Allowed sort columns at persistence layer (defense in depth)
    _SORT_COLUMNS = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "status": "status",
        "file_name": "file_name",
    }

    def __init__(self, db: Session):
        self.db = db

    def create(self, session: IngestionSession) -> None:
        """Persist a new session"""
        record = SessionRecord(id=session.id)
        self._apply(record, session)
        self.db.add(record)
        self.db.commit()

    def get(self, session_id: str) -> IngestionSession:
        """Get a session with its requests and audit log"""
        record = self._record(session_id)
        return IngestionSession(
            id=record.id,
            file_name=record.file_name,
            document_type=record.document_type,
            status=SessionStatus(record.status),
            created_at=record.created_at,
            updated_at=record.updated_at,
            extracted_data=(
                ExtractedData.model_validate(record.extracted_data)
                if record.extracted_data else None
            ),
            requests=[Request.model_validate(r.payload) for r in record.requests],
            audit_log=[to_entry(a) for a in record.audit_entries],
        )

    def save(self, session: IngestionSession) -> None:
        """Persist session fields and its full request list"""
        record = self._record(session.id)
        self._apply(record, session)

        existing = {r.id: r for r in record.requests}
        kept: list[RequestRecord] = []
        for position, request in enumerate(session.requests):
            row = existing.get(request.id) or RequestRecord(id=request.id, session_id=session.id)
            self._apply_request(row, request, position)
            kept.append(row)

        # delete-orphan cascade removes rows dropped from the list
        record.requests = kept
        self.db.commit()

    def save_request(self, session_id: str, request: Request) -> None:
        """Persist a single request snapshot"""
        row = self.db.get(RequestRecord, request.id)
        if row is None or row.session_id != session_id:
            raise RequestNotFoundError(
                f"Request '{request.id}' is not stored in session '{session_id}'"
            )
        self._apply_request(row, request, row.position)
        self.db.commit()

    def touch(self, session_id: str) -> None:
        """Bump a session's updated_at without rewriting its requests"""
        record = self._record(session_id)
        record.updated_at = utcnow()
        self.db.commit()

    def delete(self, session_id: str) -> None:
        """Delete a session, its requests and its audit log"""
        record = self._record(session_id)
        self.db.delete(record)
        self.db.commit()

    def get_all(
            self,
            filters: SessionFilters,
            paging: Pagination,
            sorting: Sorting,
    ) -> PageResult:
        """
        Retrieve session summaries matching the given filters.

        All filters are optional.
        Pagination is always applied.
        """
        conditions: list[str] = []
        params: dict[str, object] = {}

        # --- Filters ---
        if filters.status:
            conditions.append("status = :status")
            params["status"] = filters.status

        if filters.document_type:
            conditions.append("document_type = :document_type")
            params["document_type"] = filters.document_type

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        # --- Total Count ---
        count_query = text(f"""
            SELECT COUNT(*) AS total
            FROM ingestion_sessions
            {where_clause}
        """)

        total = int(self.db.execute(count_query, params).scalar_one())

        # ORDER BY: use allow-list mapping (cannot bind column names safely)
        sort_col = self._SORT_COLUMNS.get(sorting.sort_by, "created_at")
        sort_dir = "ASC" if sorting.sort_order == "asc" else "DESC"
        order_clause = f"ORDER BY {sort_col} {sort_dir}"

        # --- Data Query ---
        data_query = text(f"""
            SELECT id, file_name, document_type, status, created_at, updated_at
            FROM ingestion_sessions
            {where_clause}
            {order_clause}
            LIMIT :limit
            OFFSET :offset
        """).columns(created_at=DateTime, updated_at=DateTime)

        params["limit"] = paging.limit
        params["offset"] = paging.offset

        rows = self.db.execute(data_query, params).mappings()
        records = [SessionSummary(**row) for row in rows]

        # --- Pagination Metadata ---
        meta = PageMeta(
            total=total,
            limit=paging.limit,
            offset=paging.offset,
            has_next=(paging.offset + paging.limit) < total,
            has_previous=paging.offset > 0,
        )

        return PageResult(data=records, meta=meta)

    def _record(self, session_id: str) -> SessionRecord:
        record = self.db.get(SessionRecord, session_id)
        if record is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        return record

    @staticmethod
    def _apply(record: SessionRecord, session: IngestionSession) -> None:
        record.file_name = session.file_name
        record.document_type = session.document_type
        record.status = session.status.value
        record.created_at = session.created_at
        record.updated_at = session.updated_at
        record.extracted_data = (
            session.extracted_data.model_dump(mode="json")
            if session.extracted_data else None
        )

    @staticmethod
    def _apply_request(row: RequestRecord, request: Request, position: int) -> None:
        row.position = position
        row.entity_type = request.entity_type
        row.status = request.status.value
        row.payload = request.model_dump(mode="json")
