"""
db/session.py

Engine and session wiring for the ingestion database.

The engine is built on first use, so importing this module (for example
from the API dependencies) never needs a configured DATABASE_URL.
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import DatabaseSettings, get_database_settings
from db.config import resolve_database_url

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_db_engine(
    database_url: str | None = None,
    settings: DatabaseSettings | None = None,
) -> Engine:
    url = database_url or resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError(
            "The ingestion ledger relies on Postgres advisory locks and JSONB; "
            "configure a postgresql:// URL."
        )

    options = settings or get_database_settings()
    return create_engine(
        url,
        echo=options.echo,
        pool_pre_ping=True,
        pool_size=options.pool_size,
        max_overflow=options.max_overflow,
        pool_recycle=options.pool_recycle_seconds,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def SessionLocal() -> Session:
    """
    Open a session on the shared engine.

    Objects stay loaded after commit because the upload pipeline commits
    once per chunk and keeps reading its ledger row afterwards.
    """

    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
