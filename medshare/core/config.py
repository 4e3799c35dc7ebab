from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"

    # Database
    database_url: str
    sql_echo: bool = False

    # Logging
    log_level: str = "INFO"

    # Record sharing
    record_request_ttl_days: int = 30

    # Side channels (best-effort, never block the sharing workflow)
    notifications_enabled: bool = True
    audit_enabled: bool = True

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the .env is parsed once.
    """
    return Settings()
