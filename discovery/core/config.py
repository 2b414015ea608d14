"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    yelp_api_key: str
    database_url: str
    port: int = 8080
    cache_ttl_seconds: int = 1800
    details_max_enrich: int = 40
    details_concurrency: int = 5
    request_timeout: float = 10.0
    max_retries: int = 2
    cors_origins: Optional[str] = None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    yelp_api_key = os.getenv("YELP_API_KEY", "").strip()
    database_url = os.getenv("DATABASE_URL", "")
    port = _int_env("PORT", 8080)
    cache_ttl_seconds = _int_env("CACHE_TTL_SECONDS", 1800)
    details_max_enrich = max(0, _int_env("YELP_DETAILS_MAX_ENRICH", 40))
    details_concurrency = max(1, _int_env("YELP_DETAILS_CONCURRENCY", 5))
    max_retries = max(0, _int_env("YELP_MAX_RETRIES", 2))
    try:
        request_timeout = float(os.getenv("YELP_REQUEST_TIMEOUT", "10"))
    except ValueError:
        request_timeout = 10.0
    cors_origins = os.getenv("CORS_ORIGINS") or None

    if not yelp_api_key:
        logger.warning("YELP_API_KEY is not configured; requests must supply their own key.")
    if not database_url:
        logger.warning("DATABASE_URL is not set; responses will only be cached in memory.")

    return Settings(
        yelp_api_key=yelp_api_key,
        database_url=database_url,
        port=port,
        cache_ttl_seconds=cache_ttl_seconds,
        details_max_enrich=details_max_enrich,
        details_concurrency=details_concurrency,
        request_timeout=request_timeout,
        max_retries=max_retries,
        cors_origins=cors_origins,
    )
