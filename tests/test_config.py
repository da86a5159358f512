from __future__ import annotations

from collections.abc import Iterator

import pytest

from app.config import DatabaseSettings, get_database_settings, get_logging_settings, get_upload_ingestion_settings
from db.session import create_db_engine


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    for getter in (get_upload_ingestion_settings, get_logging_settings, get_database_settings):
        getter.cache_clear()
    yield
    for getter in (get_upload_ingestion_settings, get_logging_settings, get_database_settings):
        getter.cache_clear()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "UPLOAD_INSERT_CHUNK_SIZE",
        "UPLOAD_MAX_RECORDS",
        "UPLOAD_RUN_TIMEOUT_SECONDS",
        "UPLOAD_MAX_REPORTED_ISSUES",
        "UPLOAD_LOG_VALIDATION_ISSUES",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_upload_ingestion_settings()

    assert settings.insert_chunk_size == 5000
    assert settings.max_records == 250_000
    assert settings.run_timeout_seconds == 300.0
    assert settings.max_reported_issues == 100
    assert settings.log_validation_issues is True


def test_environment_overrides_and_bad_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UPLOAD_INSERT_CHUNK_SIZE", "0")
    monkeypatch.setenv("UPLOAD_MAX_RECORDS", "not-a-number")
    monkeypatch.setenv("UPLOAD_RUN_TIMEOUT_SECONDS", "45.5")
    monkeypatch.setenv("UPLOAD_LOG_VALIDATION_ISSUES", "off")
    monkeypatch.setenv("LOG_LEVEL", " debug ")

    settings = get_upload_ingestion_settings()

    assert settings.insert_chunk_size == 1
    assert settings.max_records == 250_000
    assert settings.run_timeout_seconds == 45.5
    assert settings.log_validation_issues is False
    assert get_logging_settings().level == "DEBUG"


def test_database_pool_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQL_ECHO", "yes")
    monkeypatch.setenv("DB_POOL_SIZE", "0")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "oops")
    monkeypatch.setenv("DB_POOL_RECYCLE", "600")

    assert get_database_settings() == DatabaseSettings(
        echo=True,
        pool_size=1,
        max_overflow=10,
        pool_recycle_seconds=600,
    )


def test_engine_rejects_non_postgres_urls() -> None:
    with pytest.raises(RuntimeError, match="postgresql"):
        create_db_engine("sqlite:///ledger.db", DatabaseSettings())
