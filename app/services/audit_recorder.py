"""
app/services/audit_recorder.py

Best-effort audit trail for uploads and deletions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from app.domain.ingestion import AuditEntry, DatasetType, UploadMode, UploadModeKind

logger = logging.getLogger(__name__)


class AuditStore(Protocol):
    def add_entry(self, entry: AuditEntry) -> None:
        ...

    def list_recent(self, *, limit: int, dataset_type: DatasetType | None = None) -> list[AuditEntry]:
        ...


class AuditRecorder:
    def __init__(self, store: AuditStore) -> None:
        self._store = store

    def record(self, entry: AuditEntry) -> bool:
        """
        Write one audit entry. Failures are logged and reported as False.
        """

        try:
            self._store.add_entry(entry)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Audit entry for %s %s (%d rows) was not recorded: %s",
                entry.dataset_type.value,
                entry.mode,
                entry.row_count,
                exc,
            )
            return False
        return True


def audit_fiscal_year(mode: UploadMode, fiscal_years: Iterable[int]) -> int | None:
    if mode.kind is UploadModeKind.REPLACE_YEAR:
        return mode.year
    years = set(fiscal_years)
    if len(years) == 1:
        return next(iter(years))
    return None
