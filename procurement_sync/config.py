from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ServiceNow
    servicenow_instance_url: str = "https://example.service-now.com"
    servicenow_api_key: str = ""
    http_timeout_seconds: float = 30.0

    # Persistence
    database_url: str = "sqlite:///./db.sqlite3"

    # Defaults stamped onto generated requests
    default_vendor_manager: str = "Ahmed Donia"
    default_contract_administrator: str = "Ahmed Donia"
    default_approver: str = "Ahmed Donia"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="APP_")

    @property
    def servicenow_api_base(self) -> str:
        return f"{self.servicenow_instance_url.rstrip('/')}/api/now"


settings = Settings()
