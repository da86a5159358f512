"""
Repository-layer exceptions for the ledger tables.

Repositories translate SQLAlchemyError into these so the pipeline can apply
its fatal / non-fatal policy without depending on driver exceptions.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for ledger repository failures."""


class DatasetPersistenceError(RepositoryError):
    """Raised when raw dataset rows cannot be deleted, inserted or read."""


class RollupPersistenceError(RepositoryError):
    """Raised when a rollup table cannot be purged or rebuilt."""


class AuditPersistenceError(RepositoryError):
    """Raised when an upload audit row cannot be written or read."""


class SettingsLookupError(RepositoryError):
    """Raised when portal settings cannot be read."""


class RunLedgerError(RepositoryError):
    """Raised when the ingestion run ledger cannot be read or updated."""
