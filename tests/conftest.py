from __future__ import annotations

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from procurement_sync.config import Settings
from procurement_sync.db import build_engine, init_db

from tests.fixtures.servicenow_stub import ServiceNowStub


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        servicenow_instance_url="https://test.service-now.com",
        servicenow_api_key="test-key",
        database_url="sqlite://",
    )


@pytest.fixture
def db_engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def stub() -> ServiceNowStub:
    return ServiceNowStub()
