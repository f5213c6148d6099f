from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "Vending Machine Marketplace"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./vending.sqlite3"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Redis cache (empty URL disables caching)
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    TOKEN_PURGE_INTERVAL: int = 3600

    # OAuth2 tokens
    ACCESS_TOKEN_TTL: int = Field(default=86400, gt=0, description="Access token lifetime (seconds)")
    REFRESH_TOKEN_TTL: int = Field(default=86400, gt=0, description="Refresh token lifetime (seconds)")
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Money
    DEFAULT_CURRENCY: str = "USD"
    DEFAULT_UNIT: str = "cent"

    # Startup seeding
    DEFAULT_CLIENT_NAME: str = "Default"
    DEFAULT_CLIENT_ID: str = "default-vending-machine"
    DEFAULT_CLIENT_SECRET: str = "dev-client-secret-change-me"
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""

    ALLOWED_ORIGINS: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
