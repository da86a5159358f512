"""
tests/conftest.py

In-memory stand-ins for the pipeline repositories.

No database is touched: every fake records the calls it receives so tests
can assert on ordering, counts and failure handling.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from app.config import UploadIngestionSettings
from app.domain.ingestion import AuditEntry, DatasetType, FiscalConfig, IngestionState, RunTicket
from app.services.ingestion_errors import IngestionConflictError
from app.services.scope_locks import IngestionScope
from app.services.upload_ingestion_service import IngestionRepositories, UploadIngestionService
from db.repositories.errors import AuditPersistenceError, DatasetPersistenceError


class FakeDatasetStore:
    def __init__(self) -> None:
        self.rows: dict[DatasetType, list[dict[str, Any]]] = {dataset: [] for dataset in DatasetType}
        self.calls: list[tuple[str, Any]] = []
        self.fail_on_chunk: int | None = None
        self.fail_delete = False
        self.fail_year_listing = False
        self._chunks_seen = 0

    def insert_chunk(self, dataset_type: DatasetType, rows: Sequence[Mapping[str, Any]]) -> int:
        self._chunks_seen += 1
        self.calls.append(("insert", len(rows)))
        if self.fail_on_chunk is not None and self._chunks_seen == self.fail_on_chunk:
            raise DatasetPersistenceError("connection reset")
        self.rows[dataset_type].extend(dict(row) for row in rows)
        return len(rows)

    def delete_fiscal_year(self, dataset_type: DatasetType, fiscal_year: int) -> int:
        self.calls.append(("delete_year", fiscal_year))
        if self.fail_delete:
            raise DatasetPersistenceError("delete timed out")
        kept = [row for row in self.rows[dataset_type] if row.get("fiscal_year") != fiscal_year]
        removed = len(self.rows[dataset_type]) - len(kept)
        self.rows[dataset_type] = kept
        return removed

    def delete_all(self, dataset_type: DatasetType) -> int:
        self.calls.append(("delete_all", None))
        if self.fail_delete:
            raise DatasetPersistenceError("delete timed out")
        removed = len(self.rows[dataset_type])
        self.rows[dataset_type] = []
        return removed

    def list_fiscal_years(self, dataset_type: DatasetType) -> list[int]:
        if self.fail_year_listing:
            raise DatasetPersistenceError("listing failed")
        return sorted({row["fiscal_year"] for row in self.rows[dataset_type]}, reverse=True)


class FakeRollupStore:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail_recompute_year: int | None = None
        self.fail_purge = False
        self.fail_refresh = False

    def recompute_transaction_summaries(self, fiscal_year: int) -> None:
        self._recompute("transactions", fiscal_year)

    def recompute_budget_actuals_summaries(self, fiscal_year: int) -> None:
        self._recompute("budget_actuals", fiscal_year)

    def purge(self, table_name: str, fiscal_year: int | None) -> int:
        self.calls.append(("purge", (table_name, fiscal_year)))
        if self.fail_purge:
            raise RuntimeError("purge failed")
        return 0

    def refresh_year_totals(self, dataset_type: DatasetType, fiscal_year: int) -> None:
        self.calls.append(("refresh", (dataset_type.value, fiscal_year)))
        if self.fail_refresh:
            raise RuntimeError("refresh failed")

    def recomputed_years(self) -> list[int]:
        return [year for name, (kind, year) in self._recompute_calls()]

    def _recompute_calls(self) -> list[tuple[str, tuple[str, int]]]:
        return [call for call in self.calls if call[0] == "recompute"]

    def _recompute(self, kind: str, fiscal_year: int) -> None:
        self.calls.append(("recompute", (kind, fiscal_year)))
        if self.fail_recompute_year == fiscal_year:
            raise RuntimeError("rollup function failed")


class FakeAuditStore:
    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []
        self.fail = False

    def add_entry(self, entry: AuditEntry) -> None:
        if self.fail:
            raise AuditPersistenceError("audit table unavailable")
        self.entries.append(entry)

    def list_recent(self, *, limit: int, dataset_type: DatasetType | None = None) -> list[AuditEntry]:
        entries = [
            entry for entry in reversed(self.entries) if dataset_type is None or entry.dataset_type is dataset_type
        ]
        return entries[:limit]


class FakeSettingsSource:
    def __init__(self, config: FiscalConfig | None = None) -> None:
        self.config = config or FiscalConfig()

    def load_fiscal_config(self) -> FiscalConfig:
        return self.config


class FakeRunLedger:
    def __init__(self) -> None:
        self.begun: list[str] = []
        self.stages: list[str] = []
        self.completed: list[dict[str, Any]] = []
        self.failed: list[str] = []
        self.interrupted_years: frozenset[int] = frozenset()
        self.conflict = False

    def begin_run(
        self,
        *,
        scope: IngestionScope,
        job_type: str,
        payload: dict[str, Any],
        stale_after_seconds: float,
    ) -> RunTicket:
        if self.conflict:
            raise IngestionConflictError(f"Another ingestion run is in progress for {scope.key}.")
        self.begun.append(scope.key)
        return RunTicket(job_id=len(self.begun), interrupted_fiscal_years=self.interrupted_years)

    def update_stage(self, ticket: RunTicket, stage: IngestionState) -> None:
        self.stages.append(stage.value)

    def complete_run(self, ticket: RunTicket, result: dict[str, Any]) -> None:
        self.completed.append(result)

    def fail_run(self, ticket: RunTicket, error_message: str, result: dict[str, Any] | None = None) -> None:
        self.failed.append(error_message)


@pytest.fixture()
def datasets() -> FakeDatasetStore:
    return FakeDatasetStore()


@pytest.fixture()
def rollups() -> FakeRollupStore:
    return FakeRollupStore()


@pytest.fixture()
def audit_store() -> FakeAuditStore:
    return FakeAuditStore()


@pytest.fixture()
def fiscal_settings() -> FakeSettingsSource:
    return FakeSettingsSource()


@pytest.fixture()
def ledger() -> FakeRunLedger:
    return FakeRunLedger()


@pytest.fixture()
def repositories(
    datasets: FakeDatasetStore,
    rollups: FakeRollupStore,
    audit_store: FakeAuditStore,
    fiscal_settings: FakeSettingsSource,
    ledger: FakeRunLedger,
) -> IngestionRepositories:
    return IngestionRepositories(
        datasets=datasets,
        rollups=rollups,
        audit=audit_store,
        settings=fiscal_settings,
        ledger=ledger,
    )


@pytest.fixture()
def settings() -> UploadIngestionSettings:
    return UploadIngestionSettings(insert_chunk_size=2, max_records=100, run_timeout_seconds=300.0)


@pytest.fixture()
def service(settings: UploadIngestionSettings) -> UploadIngestionService:
    return UploadIngestionService(settings=settings)
