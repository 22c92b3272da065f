"""Application settings and configuration.

This module defines all configuration options for the coupon service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="RRC Coupons", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # HTTP server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5000, alias="PORT")

    # Database configuration
    database_url: str = Field(default="sqlite:///./coupons.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    create_tables_on_startup: bool = Field(default=True, alias="CREATE_TABLES_ON_STARTUP")

    # Coupon pool
    coupon_prefix: str = Field(default="RRC", alias="COUPON_PREFIX")
    coupon_batch_size: int = Field(default=100, ge=1, alias="COUPON_BATCH_SIZE")
    # Candidates drawn per code before the numeric space is considered saturated
    max_generation_attempts: int = Field(default=1000, ge=1, alias="MAX_GENERATION_ATTEMPTS")

    # Cooldown between two coupons for the same client
    cooldown_seconds: int = Field(default=60 * 60, ge=1, alias="COOLDOWN_SECONDS")
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")
    cookie_samesite: Literal["lax", "strict", "none"] = Field(default="none", alias="COOKIE_SAMESITE")
    trust_proxy_headers: bool = Field(default=False, alias="TRUST_PROXY_HEADERS")

    # Server-side claim ledger (cookie becomes a cache, not the authority)
    server_side_cooldown: bool = Field(default=False, alias="SERVER_SIDE_COOLDOWN")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def cooldown_ms(self) -> int:
        """Return the cooldown window in milliseconds."""
        return self.cooldown_seconds * 1000

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


settings = Settings()
