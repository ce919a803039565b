from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from PAGEPEEKER_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEPEEKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = "http://free.pagepeeker.com"
    request_path: str = "/v2/thumbs.php"
    status_path: str = "/v2/thumbs_ready.php"

    request_timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0
    user_agent: str = "pagepeeker-client/1.0"

    default_max_wait_seconds: float = 300.0

    json_logs: bool = False
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
