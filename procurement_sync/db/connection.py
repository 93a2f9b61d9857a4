# ============================================================
# Core DB connection
# ============================================================
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from procurement_sync.config import settings
from .models import Base


def build_engine(database_url: str, **kwargs) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    """Dependency to provide DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
