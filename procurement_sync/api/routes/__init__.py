from fastapi import FastAPI

from .sessions import router as sessions_router
from .requests import router as requests_router
from .execution import router as execution_router
from .servicenow import router as servicenow_router

def register_routes(app: FastAPI):
    app.include_router(sessions_router, prefix="/v1")
    app.include_router(requests_router, prefix="/v1")
    app.include_router(execution_router, prefix="/v1")
    app.include_router(servicenow_router, prefix="/v1")
