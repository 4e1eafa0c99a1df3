"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

GRID_STRATEGIES = ("rectangular", "hexagonal")


class ConfigurationError(ValueError):
    """Raised when configuration or search input is malformed."""


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    places_http_timeout: float = 10.0
    query_timeout_seconds: float = 15.0
    cache_ttl_seconds: float = 30 * 60
    batch_size: int = 5
    batch_delay_seconds: float = 0.1
    grid_density: int = 6
    grid_strategy: str = "rectangular"
    worker_port: int = 9000


def _env_number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    places_http_timeout = _env_number("PLACES_HTTP_TIMEOUT", "10", float)
    query_timeout_seconds = _env_number("QUERY_TIMEOUT_SECONDS", "15", float)
    cache_ttl_seconds = _env_number("CACHE_TTL_SECONDS", "1800", float)
    batch_size = _env_number("SEARCH_BATCH_SIZE", "5", int)
    batch_delay_seconds = _env_number("SEARCH_BATCH_DELAY", "0.1", float)
    grid_density = _env_number("GRID_DENSITY", "6", int)
    grid_strategy = os.getenv("GRID_STRATEGY", "rectangular").strip().lower()
    worker_port = _env_number("WORKER_PORT", "9000", int)

    if batch_size < 1:
        raise ConfigurationError("SEARCH_BATCH_SIZE must be at least 1")
    if grid_density < 1:
        raise ConfigurationError("GRID_DENSITY must be at least 1")
    if grid_strategy not in GRID_STRATEGIES:
        raise ConfigurationError(f"GRID_STRATEGY must be one of {', '.join(GRID_STRATEGIES)}")

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places requests will fail.")

    return Settings(
        google_api_key=google_api_key,
        places_http_timeout=places_http_timeout,
        query_timeout_seconds=query_timeout_seconds,
        cache_ttl_seconds=cache_ttl_seconds,
        batch_size=batch_size,
        batch_delay_seconds=batch_delay_seconds,
        grid_density=grid_density,
        grid_strategy=grid_strategy,
        worker_port=worker_port,
    )
