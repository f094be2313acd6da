from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PORT = "3306"


class Settings(BaseSettings):
    # APP
    APP_NAME: str = "hlf-lab-test-app"
    APP_TITLE: str = "HLF Test Application"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "info"

    # Listener
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Database (MySQL)
    DB_HOST: Optional[str] = None
    DB_PORT: str = DEFAULT_DB_PORT
    DB_USERNAME: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    DB_NAME: Optional[str] = None
    # Pool tuning is kept raw; the pool parses it and reports bad values.
    DB_CONNECTION_LIMIT: str = "10"
    DB_QUEUE_UNBOUNDED: str = "true"

    # Deadlines (seconds)
    DB_POOL_TIMEOUT: str = "10"
    DB_CONNECT_TIMEOUT: str = "5"
    DB_QUERY_TIMEOUT: str = "30"

    # Probes / errors
    READINESS_REQUIRE_DATABASE: bool = False
    EXPOSE_ERROR_DETAILS: bool = True

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return (v or "info").strip().lower()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        coerce_numbers_to_str=True,
    )


@dataclass(frozen=True)
class PoolConfig:
    """Connection parameters for the shared pool, fixed at startup."""

    host: Optional[str]
    port: str
    user: Optional[str]
    password: Optional[str]
    database: Optional[str]
    max_connections: str = "10"
    queue_unbounded: str = "true"
    pool_timeout: str = "10"
    connect_timeout: str = "5"
    query_timeout: str = "30"

    @property
    def is_configured(self) -> bool:
        return bool(self.host) and bool(self.user) and bool(self.database)

    def public_view(self, placeholder: Optional[str] = None) -> dict:
        """Connection details safe to hand to operators (no password)."""
        return {
            "host": self.host or placeholder,
            "port": self.port,
            "database": self.database or placeholder,
            "user": self.user or placeholder,
        }


def resolve_pool_config(settings: Settings) -> PoolConfig:
    """Map settings to a PoolConfig. Never raises; missing fields mean unconfigured."""
    return PoolConfig(
        host=settings.DB_HOST,
        port=settings.DB_PORT or DEFAULT_DB_PORT,
        user=settings.DB_USERNAME,
        password=settings.DB_PASSWORD,
        database=settings.DB_NAME,
        max_connections=settings.DB_CONNECTION_LIMIT,
        queue_unbounded=settings.DB_QUEUE_UNBOUNDED,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
        query_timeout=settings.DB_QUERY_TIMEOUT,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
