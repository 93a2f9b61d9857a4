from fastapi import APIRouter, Depends

from procurement_sync.api.core.container import Container, get_container
from procurement_sync.api.schemas import ConnectionStatus

router = APIRouter(prefix="/servicenow", tags=["ServiceNow"])


@router.post("/test-connection", response_model=ConnectionStatus)
async def test_connection(container: Container = Depends(get_container)):
    """Check that the configured instance URL and API key are accepted."""
    settings = container.settings
    ok = await container.servicenow_client().test_connection(settings.servicenow_api_base)
    return ConnectionStatus(ok=ok, instance_url=settings.servicenow_instance_url)
