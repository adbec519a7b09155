from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_BACKEND_ENV = "EGG_STORE_BACKEND"
_DATABASE_URL_ENV = "EGG_DATABASE_URL"
_DATABASE_AUTH_ENV = "EGG_DATABASE_AUTH"
_MOCK_DB_PATH_ENV = "EGG_MOCK_DB_PATH"
_DEFAULT_HOUSE_ENV = "EGG_DEFAULT_HOUSE"
_LOG_TAIL_LIMIT_ENV = "EGG_LOG_TAIL_LIMIT"
_STREAM_RETRY_ENV = "EGG_STREAM_RETRY_SECONDS"
_MAX_WINDOW_DAYS_ENV = "EGG_MAX_WINDOW_DAYS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_BACKENDS = {"mock", "rest"}


@dataclass(frozen=True)
class Settings:
    store_backend: str
    database_url: str
    database_auth: Optional[str]
    mock_db_path: Optional[str]
    default_house: str
    log_tail_limit: int
    stream_retry_seconds: float
    max_window_days: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_backend(default: str) -> str:
    candidate = _read_str_env(_STORE_BACKEND_ENV, default).lower()
    return candidate if candidate in _BACKENDS else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_backend=_read_backend("mock"),
        database_url=_read_str_env(
            _DATABASE_URL_ENV,
            "https://egg-counter-dashboard-default-rtdb.firebaseio.com",
        ).rstrip("/"),
        database_auth=_read_optional_env(_DATABASE_AUTH_ENV, None),
        mock_db_path=_read_optional_env(_MOCK_DB_PATH_ENV, None),
        default_house=_read_str_env(_DEFAULT_HOUSE_ENV, "Pabellon_1"),
        log_tail_limit=_read_positive_int(_LOG_TAIL_LIMIT_ENV, 100),
        stream_retry_seconds=_read_positive_float(_STREAM_RETRY_ENV, 5.0),
        max_window_days=_read_positive_int(_MAX_WINDOW_DAYS_ENV, 31),
        log_level=_read_log_level("INFO"),
    )
