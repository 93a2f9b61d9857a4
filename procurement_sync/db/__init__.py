from .connection import SessionLocal, build_engine, engine, get_db, init_db
from .models import AuditEntryRecord, Base, RequestRecord, SessionRecord
