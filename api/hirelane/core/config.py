from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "hirelane-api"
    environment: str = "dev"
    storage_backend: Literal["memory", "postgres"] = "memory"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    default_page_size: int = 20
    max_page_size: int = 100
    reapply_policy: Literal["withdrawn_only", "never"] = "withdrawn_only"
    job_rejection_mode: Literal["retain", "delete"] = "retain"
    concurrency_policy: Literal["versioned", "last_write_wins"] = "versioned"
    enforce_job_deadline: bool = False
    otel_enabled: bool = True
    otel_service_name: str = "hirelane-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="HL_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
