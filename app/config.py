"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class UploadIngestionSettings:
    """
    Runtime settings for bulk dataset uploads.
    """

    insert_chunk_size: int = 5000
    max_records: int = 250_000
    run_timeout_seconds: float = 300.0
    max_reported_issues: int = 100
    log_validation_issues: bool = True


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Connection pool options for the ledger and dataset database.
    """

    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800


@lru_cache(maxsize=1)
def get_upload_ingestion_settings() -> UploadIngestionSettings:
    """
    Return cached upload ingestion settings from environment variables.
    """

    return UploadIngestionSettings(
        insert_chunk_size=max(1, _get_int_env("UPLOAD_INSERT_CHUNK_SIZE", 5000)),
        max_records=max(1, _get_int_env("UPLOAD_MAX_RECORDS", 250_000)),
        run_timeout_seconds=max(1.0, _get_float_env("UPLOAD_RUN_TIMEOUT_SECONDS", 300.0)),
        max_reported_issues=max(1, _get_int_env("UPLOAD_MAX_REPORTED_ISSUES", 100)),
        log_validation_issues=_get_bool_env("UPLOAD_LOG_VALIDATION_ISSUES", True),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    return DatabaseSettings(
        echo=_get_bool_env("SQL_ECHO", False),
        pool_size=max(1, _get_int_env("DB_POOL_SIZE", 5)),
        max_overflow=max(0, _get_int_env("DB_MAX_OVERFLOW", 10)),
        pool_recycle_seconds=_get_int_env("DB_POOL_RECYCLE", 1800),
    )
