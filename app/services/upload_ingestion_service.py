"""
app/services/upload_ingestion_service.py

Upload orchestration for the four financial datasets.

One run is a sequential pipeline:

    validating -> appending | replacing_year | replacing_table
               -> writing -> recomputing -> completed | failed

Nothing is deleted or written until the whole batch has passed header,
row and fiscal-year checks. Deletion finishes and is committed before the
first chunk is inserted. Chunk failures are reported with exact partial
counts, never rolled back. Rollup purges, the year-totals refresh and the
audit entry are best effort; the primary rollup recompute is not.

Every run that passes validation holds an in-process scope lock and a row
in the run ledger, so conflicting runs are rejected and a run interrupted
mid-flight is detected and repaired by the next run on the same scope.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from app.config import UploadIngestionSettings, get_upload_ingestion_settings
from app.domain.fiscal_calendar import MAX_FISCAL_YEAR, MIN_FISCAL_YEAR
from app.domain.ingestion import (
    AuditEntry,
    DatasetType,
    DeletionOutcome,
    FiscalConfig,
    IngestionOutcome,
    IngestionRequest,
    IngestionState,
    RowIssue,
    RunDeadline,
    RunTicket,
    UploadMode,
    UploadModeKind,
    UploadResult,
    ValidationIssue,
)
from app.parsing.csv_parser import parse_csv_with_headers
from app.services.audit_recorder import AuditRecorder, AuditStore, audit_fiscal_year
from app.services.chunked_writer import ChunkedWriter
from app.services.fiscal_period_normalizer import fiscal_years_of, normalize_records
from app.services.ingestion_errors import (
    ChunkWriteError,
    DeletionError,
    IngestionConflictError,
    IngestionRequestError,
    IngestionTimeoutError,
    RecordValidationError,
    RollupRecomputeError,
    SchemaValidationError,
)
from app.services.rollup_coordinator import RollupCoordinator, RollupStore
from app.services.scope_locks import IngestionScope, ScopeLockRegistry
from app.validators.dataset_validator import DatasetValidator
from app.validators.record_sanitizer import sanitize_record
from db.models.ingestion_job import IngestionJobType
from db.repositories.errors import DatasetPersistenceError, RunLedgerError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class DatasetStore(Protocol):
    def insert_chunk(self, dataset_type: DatasetType, rows: Sequence[Mapping[str, Any]]) -> int:
        ...

    def delete_fiscal_year(self, dataset_type: DatasetType, fiscal_year: int) -> int:
        ...

    def delete_all(self, dataset_type: DatasetType) -> int:
        ...

    def list_fiscal_years(self, dataset_type: DatasetType) -> list[int]:
        ...


class FiscalSettingsSource(Protocol):
    def load_fiscal_config(self) -> FiscalConfig:
        ...


class RunLedger(Protocol):
    def begin_run(
        self,
        *,
        scope: IngestionScope,
        job_type: str,
        payload: dict[str, Any],
        stale_after_seconds: float,
    ) -> RunTicket:
        """Record a running job; raise IngestionConflictError when a live run conflicts."""

    def update_stage(self, ticket: RunTicket, stage: IngestionState) -> None:
        ...

    def complete_run(self, ticket: RunTicket, result: dict[str, Any]) -> None:
        ...

    def fail_run(self, ticket: RunTicket, error_message: str, result: dict[str, Any] | None = None) -> None:
        ...


@dataclass(frozen=True)
class IngestionRepositories:
    datasets: DatasetStore
    rollups: RollupStore
    audit: AuditStore
    settings: FiscalSettingsSource
    ledger: RunLedger


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class UploadIngestionService:
    """
    Validates, writes and summarizes one dataset upload per call.
    """

    def __init__(
        self,
        *,
        settings: UploadIngestionSettings,
        validator: DatasetValidator | None = None,
        lock_registry: ScopeLockRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._validator = validator or DatasetValidator()
        self._locks = lock_registry or ScopeLockRegistry()
        self._clock = clock

    @property
    def settings(self) -> UploadIngestionSettings:
        return self._settings

    def ingest(
        self,
        *,
        request: IngestionRequest,
        repositories: IngestionRepositories,
        actor: str | None = None,
    ) -> IngestionOutcome:
        self._check_request(request)
        dataset_type = request.dataset_type
        mode = request.mode

        report = self._validator.validate(
            dataset_type=dataset_type,
            header_row=request.header,
            data_rows=request.rows,
        )
        if report.has_header_issues:
            self._log_issues(dataset_type, report.issues)
            raise SchemaValidationError(
                f"The {dataset_type.value} file header is invalid.",
                report.issues,
            )

        config = repositories.settings.load_fiscal_config()
        normalized, normalization_issues = normalize_records(report.records, dataset_type, config)
        issues: list[ValidationIssue] = [*report.issues, *normalization_issues]
        if mode.kind is UploadModeKind.REPLACE_YEAR:
            issues.extend(_replace_year_mismatches(report.records, normalized, mode))

        if issues:
            issues.sort(key=lambda issue: issue.row or 0)
            self._log_issues(dataset_type, issues)
            raise RecordValidationError(
                f"{len(issues)} validation issue(s) found in the {dataset_type.value} upload. "
                "Nothing was written.",
                issues,
            )

        records = [sanitize_record(record) for record in normalized]
        fiscal_years = fiscal_years_of(records)
        logger.info(
            "Validated %d %s records for %s (fiscal years: %s)",
            len(records),
            dataset_type.value,
            mode.value,
            _format_years(fiscal_years),
        )

        scope = IngestionScope.for_mode(dataset_type, mode, fiscal_years)
        with self._locks.hold(scope):
            deadline = RunDeadline(self._settings.run_timeout_seconds, clock=self._clock)
            ticket = self._begin_run(
                repositories.ledger,
                scope=scope,
                job_type=IngestionJobType.UPLOAD,
                payload={
                    "mode": mode.value,
                    "replace_year": mode.year,
                    "fiscal_years": sorted(fiscal_years),
                    "record_count": len(records),
                    "filename": request.filename,
                    "actor": actor,
                },
            )
            try:
                return self._run_upload(
                    request=request,
                    records=records,
                    fiscal_years=fiscal_years,
                    repositories=repositories,
                    ticket=ticket,
                    deadline=deadline,
                    actor=actor,
                )
            except (DeletionError, ChunkWriteError, RollupRecomputeError) as exc:
                result = exc.result.to_details() if isinstance(exc, ChunkWriteError) else None
                self._ledger_call(repositories.ledger.fail_run, ticket, str(exc), result)
                raise

    def delete_fiscal_year(
        self,
        *,
        dataset_type: DatasetType,
        fiscal_year: int,
        repositories: IngestionRepositories,
        actor: str | None = None,
    ) -> DeletionOutcome:
        """
        Remove every row of one dataset for one fiscal year and rebuild its rollups.
        """

        if not MIN_FISCAL_YEAR <= fiscal_year <= MAX_FISCAL_YEAR:
            raise IngestionRequestError(
                f"fiscal_year must be between {MIN_FISCAL_YEAR} and {MAX_FISCAL_YEAR}."
            )

        scope = IngestionScope.for_year(dataset_type, fiscal_year)
        with self._locks.hold(scope):
            deadline = RunDeadline(self._settings.run_timeout_seconds, clock=self._clock)
            ticket = self._begin_run(
                repositories.ledger,
                scope=scope,
                job_type=IngestionJobType.DELETE_FISCAL_YEAR,
                payload={"fiscal_years": [fiscal_year], "actor": actor},
            )
            try:
                deleted = self._delete_rows(repositories.datasets, dataset_type, UploadMode.replace_year(fiscal_year))
                coordinator = RollupCoordinator(repositories.rollups, repositories.datasets)
                coordinator.purge_rollups(dataset_type, fiscal_year)

                AuditRecorder(repositories.audit).record(
                    AuditEntry(
                        dataset_type=dataset_type,
                        mode=UploadModeKind.REPLACE_YEAR.value,
                        row_count=-deleted,
                        actor=actor,
                        fiscal_year=fiscal_year,
                        created_at=datetime.now(timezone.utc),
                    )
                )

                self._ledger_call(repositories.ledger.update_stage, ticket, IngestionState.RECOMPUTING)
                recomputed = coordinator.recompute(
                    dataset_type,
                    {fiscal_year} | _ticket_years(ticket),
                    deadline=deadline,
                )
                coordinator.refresh(dataset_type, recomputed)
            except (DeletionError, RollupRecomputeError) as exc:
                self._ledger_call(repositories.ledger.fail_run, ticket, str(exc), None)
                raise

            self._ledger_call(
                repositories.ledger.complete_run,
                ticket,
                {"deleted_count": deleted, "recomputed_fiscal_years": list(recomputed)},
            )

        logger.info("Deleted %d %s rows for fiscal year %d", deleted, dataset_type.value, fiscal_year)
        return DeletionOutcome(
            dataset_type=dataset_type,
            fiscal_year=fiscal_year,
            deleted_count=deleted,
            message=f"Deleted {deleted} {dataset_type.value} rows for fiscal year {fiscal_year}.",
        )

    def list_history(
        self,
        *,
        repositories: IngestionRepositories,
        limit: int = 50,
        dataset_type: DatasetType | None = None,
    ) -> list[AuditEntry]:
        return repositories.audit.list_recent(limit=max(1, min(limit, 500)), dataset_type=dataset_type)

    def _run_upload(
        self,
        *,
        request: IngestionRequest,
        records: list[dict[str, Any]],
        fiscal_years: frozenset[int],
        repositories: IngestionRepositories,
        ticket: RunTicket | None,
        deadline: RunDeadline,
        actor: str | None,
    ) -> IngestionOutcome:
        dataset_type = request.dataset_type
        mode = request.mode
        ledger = repositories.ledger
        coordinator = RollupCoordinator(repositories.rollups, repositories.datasets)
        recorder = AuditRecorder(repositories.audit)

        self._ledger_call(ledger.update_stage, ticket, _STATE_BY_MODE[mode.kind])
        if mode.is_destructive:
            deleted = self._delete_rows(repositories.datasets, dataset_type, mode)
            logger.info("Cleared %d existing %s rows for %s", deleted, dataset_type.value, _scope_label(mode))
            coordinator.purge_rollups(dataset_type, mode.year)

        self._ledger_call(ledger.update_stage, ticket, IngestionState.WRITING)
        writer = ChunkedWriter(
            repositories.datasets,
            chunk_size=self._settings.insert_chunk_size,
            max_records=self._settings.max_records,
        )
        result = writer.write(dataset_type, records, deadline=deadline)

        audit_entry = AuditEntry(
            dataset_type=dataset_type,
            mode=mode.value,
            row_count=result.inserted_count,
            actor=actor,
            fiscal_year=audit_fiscal_year(mode, fiscal_years),
            filename=request.filename,
            created_at=datetime.now(timezone.utc),
        )

        if not result.succeeded:
            if result.inserted_count or mode.is_destructive:
                recorder.record(audit_entry)
            raise _write_failure(dataset_type, result)

        recorder.record(audit_entry)

        self._ledger_call(ledger.update_stage, ticket, IngestionState.RECOMPUTING)
        affected = set(fiscal_years) | _ticket_years(ticket)
        if mode.year is not None:
            affected.add(mode.year)
        recomputed = coordinator.recompute(dataset_type, affected, mode=mode, deadline=deadline)
        coordinator.refresh(dataset_type, recomputed)

        self._ledger_call(
            ledger.complete_run,
            ticket,
            {**result.to_details(), "recomputed_fiscal_years": list(recomputed)},
        )
        logger.info(
            "Completed %s upload to %s: %d rows, fiscal years %s",
            mode.value,
            dataset_type.value,
            result.inserted_count,
            _format_years(result.affected_fiscal_years),
        )
        return IngestionOutcome(
            dataset_type=dataset_type,
            mode=mode,
            result=result,
            recomputed_fiscal_years=recomputed,
            message=f"Uploaded {result.inserted_count} {dataset_type.value} rows ({mode.value}).",
        )

    def _check_request(self, request: IngestionRequest) -> None:
        if request.record_count == 0:
            raise IngestionRequestError("No records were supplied.")
        if request.record_count > self._settings.max_records:
            raise IngestionRequestError(
                f"{request.record_count} records exceed the maximum of "
                f"{self._settings.max_records} per upload."
            )
        if request.mode.kind is UploadModeKind.REPLACE_YEAR:
            year = request.mode.year
            if year is None:
                raise IngestionRequestError("replace_year mode requires a replace year.")
            if not MIN_FISCAL_YEAR <= year <= MAX_FISCAL_YEAR:
                raise IngestionRequestError(
                    f"Replace year must be between {MIN_FISCAL_YEAR} and {MAX_FISCAL_YEAR}."
                )
        if request.mode.kind is UploadModeKind.REPLACE_TABLE and not request.confirm_replace_table:
            raise IngestionRequestError(
                f"replace_table deletes every {request.dataset_type.value} row; "
                "confirm_replace_table must be set."
            )

    def _delete_rows(self, datasets: DatasetStore, dataset_type: DatasetType, mode: UploadMode) -> int:
        try:
            if mode.kind is UploadModeKind.REPLACE_TABLE:
                return datasets.delete_all(dataset_type)
            return datasets.delete_fiscal_year(dataset_type, mode.year)
        except DatasetPersistenceError as exc:
            logger.error("Could not clear %s rows for %s: %s", dataset_type.value, _scope_label(mode), exc)
            raise DeletionError(
                f"Existing {dataset_type.value} rows for {_scope_label(mode)} could not be deleted. "
                "No new rows were written."
            ) from exc

    def _begin_run(
        self,
        ledger: RunLedger,
        *,
        scope: IngestionScope,
        job_type: str,
        payload: dict[str, Any],
    ) -> RunTicket | None:
        try:
            ticket = ledger.begin_run(
                scope=scope,
                job_type=job_type,
                payload=payload,
                stale_after_seconds=self._settings.run_timeout_seconds,
            )
        except IngestionConflictError:
            raise
        except RunLedgerError as exc:
            logger.warning("Run ledger unavailable for scope %s; continuing without it: %s", scope.key, exc)
            return None

        if ticket.interrupted_fiscal_years:
            logger.warning(
                "Scope %s had an interrupted run; rollups for fiscal years %s will be rebuilt",
                scope.key,
                _format_years(ticket.interrupted_fiscal_years),
            )
        return ticket

    @staticmethod
    def _ledger_call(method: Callable[..., None], ticket: RunTicket | None, *args: Any) -> None:
        if ticket is None:
            return
        try:
            method(ticket, *args)
        except RunLedgerError as exc:
            logger.warning("Run ledger update failed for job %s: %s", ticket.job_id, exc)

    def _log_issues(self, dataset_type: DatasetType, issues: Sequence[ValidationIssue]) -> None:
        if not self._settings.log_validation_issues:
            return
        limit = self._settings.max_reported_issues
        for issue in issues[:limit]:
            logger.info(
                "%s validation issue (row=%s, field=%s): %s",
                dataset_type.value,
                issue.row,
                issue.field,
                issue.message,
            )
        if len(issues) > limit:
            logger.info("%d further %s validation issues not logged", len(issues) - limit, dataset_type.value)


_STATE_BY_MODE: dict[UploadModeKind, IngestionState] = {
    UploadModeKind.APPEND: IngestionState.APPENDING,
    UploadModeKind.REPLACE_YEAR: IngestionState.REPLACING_YEAR,
    UploadModeKind.REPLACE_TABLE: IngestionState.REPLACING_TABLE,
}


def _replace_year_mismatches(
    parsed: Sequence[Any],
    normalized: Sequence[Mapping[str, Any]],
    mode: UploadMode,
) -> list[RowIssue]:
    issues: list[RowIssue] = []
    for source, record in zip(parsed, normalized):
        fiscal_year = record.get("fiscal_year")
        if isinstance(fiscal_year, int) and fiscal_year != mode.year:
            issues.append(
                RowIssue(
                    row=source.row_number,
                    field="fiscal_year",
                    message=f"Fiscal year {fiscal_year} does not match the replace year {mode.year}.",
                    value=str(fiscal_year),
                )
            )
    return issues


def _write_failure(dataset_type: DatasetType, result: UploadResult) -> ChunkWriteError:
    if result.timed_out:
        return IngestionTimeoutError(
            f"The {dataset_type.value} upload ran out of time after writing "
            f"{result.inserted_count} of {result.attempted_count} rows.",
            result,
        )
    return ChunkWriteError(
        f"Writing {dataset_type.value} rows failed at row {result.failed_at_chunk_index}; "
        f"{result.inserted_count} of {result.attempted_count} rows were written.",
        result,
    )


def _ticket_years(ticket: RunTicket | None) -> set[int]:
    return set(ticket.interrupted_fiscal_years) if ticket is not None else set()


def _scope_label(mode: UploadMode) -> str:
    return "all fiscal years" if mode.year is None else f"fiscal year {mode.year}"


def _format_years(years: frozenset[int] | set[int]) -> str:
    return ", ".join(str(year) for year in sorted(years)) or "none"


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def request_from_records(
    *,
    dataset_type: DatasetType,
    mode: UploadMode,
    records: Sequence[Mapping[str, Any]],
    confirm_replace_table: bool = False,
    filename: str | None = None,
) -> IngestionRequest:
    """
    Flatten JSON-style records into a header row plus string rows.

    Columns appear in first-seen order; a key missing from a record is blank.
    """

    header: list[str] = []
    seen: set[str] = set()
    for record in records:
        for key in record:
            if key not in seen:
                seen.add(key)
                header.append(key)

    rows = [[_cell_text(record.get(column)) for column in header] for record in records]
    return IngestionRequest(
        dataset_type=dataset_type,
        mode=mode,
        header=header,
        rows=rows,
        confirm_replace_table=confirm_replace_table,
        filename=filename,
    )


def request_from_csv_text(
    *,
    dataset_type: DatasetType,
    mode: UploadMode,
    text: str,
    confirm_replace_table: bool = False,
    filename: str | None = None,
) -> IngestionRequest:
    header, rows = parse_csv_with_headers(text)
    return IngestionRequest(
        dataset_type=dataset_type,
        mode=mode,
        header=header,
        rows=rows,
        confirm_replace_table=confirm_replace_table,
        filename=filename,
    )


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@lru_cache(maxsize=1)
def get_upload_ingestion_service() -> UploadIngestionService:
    return UploadIngestionService(settings=get_upload_ingestion_settings())
