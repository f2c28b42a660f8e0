"""
Configuration helpers for the slug backend.

Exposes a Settings object that reads environment variables (public base URL,
database URL, slug policy location, cache/rate limits) so that routers and
services do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import logging
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    slug_policy_path: str
    log_level: str
    redirect_cache_ttl_seconds: int
    slug_check_rate_limit: int
    slug_check_rate_window_seconds: int
    auto_create_tables: bool


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./slugs.db"),
        slug_policy_path=os.getenv("SLUG_POLICY_PATH", ""),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        redirect_cache_ttl_seconds=_int(os.getenv("REDIRECT_CACHE_TTL_SECONDS", "300"), 300),
        slug_check_rate_limit=_int(os.getenv("SLUG_CHECK_RATE_LIMIT", "60"), 60),
        slug_check_rate_window_seconds=_int(os.getenv("SLUG_CHECK_RATE_WINDOW_SECONDS", "60"), 60),
        auto_create_tables=_bool(os.getenv("AUTO_CREATE_TABLES"), True),
    )


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s | %(levelname)s | %(message)s")
