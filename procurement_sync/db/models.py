from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, JSON, Text, Integer, ForeignKey,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class SessionRecord(Base):
    __tablename__ = "ingestion_sessions"

    id = Column(String, primary_key=True)
    file_name = Column(String, nullable=False)
    document_type = Column(String, nullable=True)
    status = Column(String, index=True, default="in_progress")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)
    extracted_data = Column(JSON, nullable=True)

    requests = relationship(
        "RequestRecord",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="RequestRecord.position",
    )
    audit_entries = relationship(
        "AuditEntryRecord",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="AuditEntryRecord.seq",
    )


class RequestRecord(Base):
    __tablename__ = "api_requests"

    id = Column(String, primary_key=True)
    session_id = Column(String, ForeignKey("ingestion_sessions.id"), index=True, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    entity_type = Column(String, index=True)
    status = Column(String, index=True)
    payload = Column(JSON, nullable=False)  # Full request snapshot

    session = relationship("SessionRecord", back_populates="requests")


class AuditEntryRecord(Base):
    __tablename__ = "audit_entries"

    seq = Column(Integer, primary_key=True, autoincrement=True)  # Append order
    id = Column(String, unique=True, nullable=False)
    session_id = Column(String, ForeignKey("ingestion_sessions.id"), index=True, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow)
    action = Column(String, index=True)
    details = Column(Text)
    before_value = Column(JSON, nullable=True)
    after_value = Column(JSON, nullable=True)

    session = relationship("SessionRecord", back_populates="audit_entries")
