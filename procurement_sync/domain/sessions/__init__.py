"""Ingestion sessions: one uploaded document and the requests built from it."""
from .entities import (
    DocumentTypeLiteral,
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
from .repository import SessionRepository, SessionRepositoryProtocol
