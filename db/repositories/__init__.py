"""
Repository layer exports.
"""

from db.repositories.errors import (
    AuditPersistenceError,
    DatasetPersistenceError,
    RepositoryError,
    RollupPersistenceError,
    RunLedgerError,
    SettingsLookupError,
)
from db.repositories.ingestion_job_repository import IngestionJobRepository

__all__ = [
    "IngestionJobRepository",
    "RepositoryError",
    "DatasetPersistenceError",
    "RollupPersistenceError",
    "AuditPersistenceError",
    "SettingsLookupError",
    "RunLedgerError",
]
