"""FastAPI service for reviewing and executing ServiceNow procurement requests.

Flow:
- a session is created per uploaded document
- extracted data is attached and turned into pending requests
- requests are edited, approved and dry-run
- approved (or pending) requests are executed in dependency order
- every step lands in the session's audit log
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from procurement_sync import __version__
from procurement_sync.api.routes import register_routes
from procurement_sync.db import init_db

tags_metadata = [
    {
        "name": "Sessions",
        "description": "Ingestion sessions, extracted data and the audit log"
    },
    {
        "name": "Requests",
        "description": "Review, edit, approve and retry individual ServiceNow requests"
    },
    {
        "name": "Execution",
        "description": "Execution order preview, dry runs and batch execution"
    },
    {
        "name": "ServiceNow",
        "description": "Connectivity checks against the configured instance"
    }
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title='Procurement Sync',
    version=__version__,
    description='Dependency-ordered execution of ServiceNow procurement requests',
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Register all API routes
register_routes(app)
