"""Configuration for the Eneca core and MCP server."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ENECA_",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite:///./eneca.db"

    # Read-through cache for display lookups (users, projects, stages)
    cache_ttl_seconds: int = 3600

    # Search limits
    user_search_max_length: int = 50
    user_search_limit: int = 50
    default_page_size: int = 10

    # SSE transport
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["*"]

    # Rate limiting (per SSE session)
    rate_limit_requests: int = 1000
    rate_limit_window: int = 60  # seconds

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
