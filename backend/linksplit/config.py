"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "LinkSplit"
    debug: bool = False

    # Database
    database_url: str

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Link cache for the redirect path
    link_cache_enabled: bool = True
    link_cache_ttl_seconds: int = 3600
    link_cache_test_ttl_seconds: int = 60  # Records of links under test

    # Split testing
    test_cookie_name: str = "dub_test_url"
    test_cookie_max_age_seconds: int = 60 * 60 * 24 * 7  # 1 week

    # CORS
    frontend_url: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
