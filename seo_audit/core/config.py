"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        DATABASE_URL: PostgreSQL connection string with asyncpg driver.
        PSI_API_KEY: Optional Google PageSpeed Insights API key.
        PSI_TIMEOUT_SECONDS: Hard timeout for each PageSpeed fetch.
        CRAWL_MAX_PAGES: Default page cap for a single audit crawl.
        RULE_CONCURRENCY: Maximum rule evaluations running at once per audit.
        MAX_CONCURRENT_AUDITS: Maximum audit jobs running at once per process.
        AUDIT_TIMEOUT_SECONDS: Whole-job timeout for a single audit.
        PROGRESS_RETENTION_SECONDS: How long a finished audit's last progress event stays in memory.
        ENVIRONMENT: Current environment (development, staging, production).
        DEBUG: Enable debug mode.
        CORS_ORIGINS: List of allowed CORS origins.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert database URL to asyncpg format.

        Hosting providers use postgres:// or postgresql://
        but asyncpg requires postgresql+asyncpg://
        """
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://") and "+asyncpg" not in v:
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    PSI_API_KEY: str = ""  # PageSpeed works without a key, with lower rate limits
    PSI_TIMEOUT_SECONDS: float = 60.0

    CRAWL_MAX_PAGES: int = 25
    CRAWL_TIMEOUT_SECONDS: float = 30.0
    CRAWL_RESPECT_ROBOTS: bool = False
    CRAWL_USER_AGENT: str = "Mozilla/5.0 (compatible; SEOAuditBot/1.0)"

    RULE_CONCURRENCY: int = 8
    MAX_CONCURRENT_AUDITS: int = 2
    AUDIT_TIMEOUT_SECONDS: float = 600.0
    PROGRESS_RETENTION_SECONDS: float = 300.0

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | List[str]) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string or comma-separated
            if v.startswith("["):
                import json
                return json.loads(v.replace("'", '"'))
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("RULE_CONCURRENCY", "MAX_CONCURRENT_AUDITS", "CRAWL_MAX_PAGES")
    @classmethod
    def require_positive(cls, v: int) -> int:
        """Reject zero or negative pool sizes."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()


settings = get_settings()
