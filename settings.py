from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

_UNSET = object()


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./tmp/energy.db"
    # None keeps staged uploads in memory.
    upload_root_path: Optional[str] = "./tmp/uploads"
    upload_ttl_seconds: int = 3600
    error_log_capacity: int = 100
    preview_limit: int = 10
    log_level: str = "INFO"


def _env(name: str) -> object:
    """Stripped value of ``name``; ``_UNSET`` when the variable is absent."""
    value = os.getenv(name)
    return _UNSET if value is None else value.strip()


def _text(name: str, default: str) -> str:
    value = _env(name)
    return value if isinstance(value, str) and value else default


def _optional_text(name: str, default: Optional[str]) -> Optional[str]:
    value = _env(name)
    if value is _UNSET:
        return default
    return value or None


def _positive_int(name: str, default: int) -> int:
    value = _env(name)
    if not isinstance(value, str):
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    return Settings(
        database_url=_text("DATABASE_URL", defaults.database_url),
        upload_root_path=_optional_text("UPLOAD_STAGING_PATH", defaults.upload_root_path),
        upload_ttl_seconds=_positive_int("UPLOAD_TTL_SECONDS", defaults.upload_ttl_seconds),
        error_log_capacity=_positive_int("ERROR_LOG_CAPACITY", defaults.error_log_capacity),
        preview_limit=_positive_int("PREVIEW_ROW_LIMIT", defaults.preview_limit),
        log_level=_text("LOG_LEVEL", defaults.log_level).upper(),
    )
