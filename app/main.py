from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any database connection is initialised and raises
    RuntimeError listing every problem so the operator can fix them in one
    restart cycle.
    """

    from app.config import get_upload_ingestion_settings
    from db.config import load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    try:
        resolve_database_url()
    except RuntimeError as exc:
        errors.append(str(exc))

    settings = get_upload_ingestion_settings()
    if settings.insert_chunk_size > settings.max_records:
        errors.append(
            f"UPLOAD_INSERT_CHUNK_SIZE ({settings.insert_chunk_size}) must not exceed "
            f"UPLOAD_MAX_RECORDS ({settings.max_records})."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    from app.config import get_logging_settings

    log_level = get_logging_settings().level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate; a missing table aborts startup.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch, %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app(*, check_database: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()
    if check_database:
        _validate_env()

    application = FastAPI(
        title="Financial Data Ingestion API",
        version="1.0.0",
        lifespan=_lifespan if check_database else None,
    )

    from app.api.routers import upload_ingestion_router

    application.include_router(upload_ingestion_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application
