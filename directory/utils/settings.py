"""Runtime settings sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class Settings:
    default_page_size: int
    max_page_size: int
    projection_relation_limit: int
    api_prefix: str
    public_base_url: Optional[str]
    require_identity: bool
    db_pool_timeout: int
    db_statement_timeout_ms: Optional[int]


def _normalize_bool(value: str | None, default: bool = False) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _positive_int(value: str | None, default: Optional[int]) -> Optional[int]:
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def _normalize_prefix(value: str | None) -> str:
    prefix = (value or "").strip().strip("/")
    return f"/{prefix}" if prefix else ""


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return the cached settings for this process."""
    max_page_size = _positive_int(os.getenv("DIRECTORY_MAX_PAGE_SIZE"), 100)
    default_page_size = min(_positive_int(os.getenv("DIRECTORY_DEFAULT_PAGE_SIZE"), 20), max_page_size)
    relation_limit = min(
        _positive_int(os.getenv("DIRECTORY_PROJECTION_RELATION_LIMIT"), 20),
        max_page_size,
    )
    base_url = (os.getenv("DIRECTORY_PUBLIC_BASE_URL") or "").strip().rstrip("/") or None
    return Settings(
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        projection_relation_limit=relation_limit,
        api_prefix=_normalize_prefix(os.getenv("DIRECTORY_API_PREFIX")),
        public_base_url=base_url,
        require_identity=_normalize_bool(os.getenv("DIRECTORY_REQUIRE_IDENTITY"), default=False),
        db_pool_timeout=_positive_int(os.getenv("DIRECTORY_DB_POOL_TIMEOUT"), 30),
        db_statement_timeout_ms=_positive_int(os.getenv("DIRECTORY_DB_STATEMENT_TIMEOUT_MS"), None),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
