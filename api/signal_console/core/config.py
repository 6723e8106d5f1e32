from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DatabaseAuthMode = Literal["password", "client_secret", "managed_identity", "default"]


class Settings(BaseSettings):
    app_name: str = "growth-signal-console"
    environment: str = "dev"
    route_prefix: str = ""
    database_host: str | None = None
    database_port: int = 5432
    database_name: str | None = None
    database_user: str | None = None
    database_password: str | None = None
    database_auth_mode: DatabaseAuthMode = "password"
    database_ssl: str = "require"
    database_token_scope: str = "https://ossrdbms-aad.database.windows.net/.default"
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    database_command_timeout_seconds: float = 15.0
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None
    enforce_terminal_decisions: bool = False
    tag_generation_url: str | None = None
    tag_generation_key: str | None = None
    tag_generation_timeout_seconds: float = 30.0
    otel_enabled: bool = True
    otel_service_name: str = "growth-signal-console-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="GSC_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
