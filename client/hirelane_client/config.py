from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:8000"
    session_path: Path = Path.home() / ".hirelane" / "session.json"
    request_timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_base_seconds: float = 0.5
    retry_max_seconds: float = 8.0

    model_config = SettingsConfigDict(env_prefix="HL_CLIENT_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
