"""Centralized configuration management for the storefront service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env file before the settings singleton is created so every
# importer of :mod:`storefront.settings` observes the same environment.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/storefront.db"
POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_REDIS_RETRY_BACKOFF_SECONDS = 30.0
DEFAULT_STOREFRONT_CACHE_TTL_SECONDS = 600
DEFAULT_ANALYTICS_CACHE_TTL_SECONDS = 300
DEFAULT_TRACKING_API_BASE_URL = "http://localhost:8000"
DEFAULT_LOG_LEVEL = "INFO"


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Besides the raw environment values the class exposes a few derived helpers
    (normalized database URL, numeric log level) so downstream modules do not
    repeat parsing logic.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Record whether Redis was configured explicitly."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "Full SQLAlchemy-compatible database URL. Postgres URLs supplied in"
            " sync format (postgres:// or postgresql://) are coerced into the"
            " async psycopg driver string at runtime."
        ),
    )
    use_sqlite: bool = Field(
        default=False,
        alias="USE_SQLITE",
        description="Force SQLite usage regardless of DATABASE_URL.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string consumed by the cache client.",
    )
    redis_retry_backoff_seconds: float = Field(
        default=DEFAULT_REDIS_RETRY_BACKOFF_SECONDS,
        alias="REDIS_RETRY_BACKOFF_SECONDS",
        description="Cooldown duration applied after Redis connection failures.",
    )
    storefront_cache_ttl_seconds: int = Field(
        default=DEFAULT_STOREFRONT_CACHE_TTL_SECONDS,
        alias="STOREFRONT_CACHE_TTL_SECONDS",
        gt=0,
        description=(
            "Lifetime of cached public storefront snapshots. Bounds staleness"
            " when an invalidation is lost."
        ),
    )
    analytics_cache_ttl_seconds: int = Field(
        default=DEFAULT_ANALYTICS_CACHE_TTL_SECONDS,
        alias="ANALYTICS_CACHE_TTL_SECONDS",
        gt=0,
        description="Lifetime of cached dashboard analytics aggregates.",
    )
    cache_single_flight: bool = Field(
        default=True,
        alias="CACHE_SINGLE_FLIGHT",
        description=(
            "Coalesce concurrent cache misses for the same key inside one"
            " process so only a single loader call hits the database."
        ),
    )
    tracking_api_base_url: str = Field(
        default=DEFAULT_TRACKING_API_BASE_URL,
        alias="TRACKING_API_BASE_URL",
        description="Base URL of the tracking ingress used by HTTP clients.",
    )
    tracking_timeout_seconds: float = Field(
        default=5.0,
        alias="TRACKING_TIMEOUT_SECONDS",
        description="Request timeout applied to tracking ingress calls.",
    )
    cors_allow_origins: str = Field(
        default="",
        alias="CORS_ALLOW_ORIGINS",
        description=(
            "Comma separated origins allowed to call the API from a browser, in"
            " addition to the localhost development origins."
        ),
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )
    slow_query_threshold: float = Field(
        default=0.1,
        alias="SLOW_QUERY_THRESHOLD",
        description="Seconds after which a SQL statement is logged as slow.",
    )

    @property
    def resolved_database_url(self) -> str:
        """Return the async-compatible database URL after applying fallbacks."""

        if self.use_sqlite or not self.database_url:
            return DEFAULT_SQLITE_DATABASE_URL

        url = self.database_url.strip()

        for prefix in POSTGRES_SYNC_PREFIXES:
            if url.startswith(prefix):
                return url.replace(prefix, POSTGRES_ASYNC_PREFIX, 1)

        if url.startswith(POSTGRES_ASYNC_PREFIX) or url.startswith("sqlite+aiosqlite://"):
            return url

        raise RuntimeError(
            f"Expected a PostgreSQL connection string or SQLite fallback, received: {url}"
        )

    @property
    def database_type(self) -> str:
        """Return ``sqlite`` when using SQLite otherwise ``postgresql``."""

        if self.resolved_database_url.startswith("sqlite"):
            return "sqlite"
        return "postgresql"

    @property
    def cors_origins(self) -> list[str]:
        """Return configured CORS origins without trailing slashes or blanks."""

        return [
            origin.strip().rstrip("/")
            for origin in self.cors_allow_origins.split(",")
            if origin.strip()
        ]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - storefront reads will hit the database "
                "directly whenever the local Redis is unavailable"
            )

        if not self.cors_origins:
            warnings.append(
                "CORS_ALLOW_ORIGINS is not set - using default localhost origins only "
                "(storefront pages on other hosts cannot send tracking calls)"
            )

        if self.database_type == "sqlite":
            warnings.append(
                "DATABASE_URL is not set - using the SQLite fallback "
                "(not suitable for production traffic)"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


settings = get_settings()

__all__ = [
    "AppSettings",
    "DEFAULT_ANALYTICS_CACHE_TTL_SECONDS",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REDIS_RETRY_BACKOFF_SECONDS",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SQLITE_DATABASE_URL",
    "DEFAULT_STOREFRONT_CACHE_TTL_SECONDS",
    "get_settings",
    "settings",
]
