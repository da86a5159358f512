"""
Migration environment for the ingestion ledger and dataset tables.

The target database comes from ``alembic -x db_url=...`` when given,
then ALEMBIC_DATABASE_URL, then the application's own URL resolution.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

import db.models  # noqa: F401  registers every table on Base.metadata
from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _migration_url() -> str:
    load_env_files()
    override = context.get_x_argument(as_dictionary=True).get("db_url") or os.getenv("ALEMBIC_DATABASE_URL")
    url = normalize_postgres_url(override) if override else resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Migrations target PostgreSQL only.")
    return url


def _configure(**options: object) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        **options,
    )


def run_migrations_offline() -> None:
    _configure(url=_migration_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(_migration_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
