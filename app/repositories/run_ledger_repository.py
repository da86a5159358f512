"""
app/repositories/run_ledger_repository.py

Run ledger backed by the ``ingestion_jobs`` table.

The ledger rejects a run whose scope conflicts with a live ``running`` job
from any process. Checks for one dataset are serialized by a Postgres
advisory lock held until the new job row is committed. A ``running`` job
older than the run budget is treated as interrupted: it is marked failed
and its fiscal years are handed to the new run for rollup repair.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import IngestionState, RunTicket
from app.services.ingestion_errors import IngestionConflictError
from app.services.scope_locks import IngestionScope, parse_scope_key
from db.models.ingestion_job import IngestionJob
from db.repositories.errors import RunLedgerError
from db.repositories.ingestion_job_repository import IngestionJobRepository

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Run was interrupted before completion; taken over by a later run."


class SqlRunLedger:
    def __init__(
        self,
        session: Session,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._jobs = IngestionJobRepository(session)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def begin_run(
        self,
        *,
        scope: IngestionScope,
        job_type: str,
        payload: dict[str, Any],
        stale_after_seconds: float,
    ) -> RunTicket:
        stale_before = self._now() - timedelta(seconds=stale_after_seconds)
        interrupted: set[int] = set()

        try:
            self._jobs.lock_dataset(scope.dataset_type.value)
            for job in self._jobs.list_running(dataset_type=scope.dataset_type.value, for_update=True):
                if not scope.conflicts_with(parse_scope_key(job.scope_key)):
                    continue
                if _is_stale(job, stale_before):
                    interrupted.update(_job_fiscal_years(job))
                    self._jobs.mark_failed(job_id=job.id, error_message=INTERRUPTED_MESSAGE)
                    logger.warning("Marked interrupted run %s (%s) as failed", job.id, job.scope_key)
                    continue
                self._session.rollback()
                raise IngestionConflictError(
                    f"Another ingestion run ({job.scope_key}) started at {job.started_at} "
                    f"is still in progress for {scope.dataset_type.value}. Retry once it finishes."
                )

            job = self._jobs.create_job(
                job_type=job_type,
                dataset_type=scope.dataset_type.value,
                scope_key=scope.key,
                stage=IngestionState.VALIDATING.value,
                request_payload=payload,
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RunLedgerError(f"Failed to record ingestion run: {exc}") from exc

        return RunTicket(job_id=job.id, interrupted_fiscal_years=frozenset(interrupted))

    def update_stage(self, ticket: RunTicket, stage: IngestionState) -> None:
        self._apply(lambda: self._jobs.mark_stage(job_id=ticket.job_id, stage=stage.value))

    def complete_run(self, ticket: RunTicket, result: dict[str, Any]) -> None:
        def _complete() -> None:
            job = self._jobs.mark_completed(job_id=ticket.job_id, result_payload=result)
            if job is not None:
                job.stage = IngestionState.COMPLETED.value

        self._apply(_complete)

    def fail_run(self, ticket: RunTicket, error_message: str, result: dict[str, Any] | None = None) -> None:
        def _fail() -> None:
            job = self._jobs.mark_failed(job_id=ticket.job_id, error_message=error_message, result_payload=result)
            if job is not None:
                job.stage = IngestionState.FAILED.value

        self._apply(_fail)

    def _apply(self, change: Callable[[], Any]) -> None:
        try:
            change()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RunLedgerError(f"Failed to update ingestion run: {exc}") from exc


def _is_stale(job: IngestionJob, stale_before: datetime) -> bool:
    started = job.started_at or job.created_at
    if started is None:
        return True
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return started < stale_before


def _job_fiscal_years(job: IngestionJob) -> set[int]:
    payload = job.request_payload or {}
    years = payload.get("fiscal_years") or []
    return {int(year) for year in years if isinstance(year, int)}
