# --------------------------------
# DI container
# --------------------------------
from functools import lru_cache
from typing import Optional

import httpx

from procurement_sync.config import Settings, settings as default_settings
from procurement_sync.tools.servicenow_client import ServiceNowClient


class Container:
    def __init__(
        self,
        settings: Settings = default_settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        # Shared transport, mainly so tests can route calls to a stub.
        self._http_client = http_client

    @property
    def settings(self) -> Settings:
        return self._settings

    def servicenow_client(self) -> ServiceNowClient:
        return ServiceNowClient(
            api_key=self._settings.servicenow_api_key,
            timeout=self._settings.http_timeout_seconds,
            client=self._http_client,
        )


@lru_cache
def get_container():
    return Container()
