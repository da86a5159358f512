"""
Repository for ingestion run ledger persistence and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.ingestion_job import IngestionJob, IngestionJobStatus


class IngestionJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        job_type: str,
        dataset_type: str,
        scope_key: str,
        stage: str | None = None,
        request_payload: dict[str, Any] | None = None,
    ) -> IngestionJob:
        job = IngestionJob(
            job_type=job_type,
            dataset_type=dataset_type,
            scope_key=scope_key,
            status=IngestionJobStatus.RUNNING,
            stage=stage,
            request_payload=request_payload,
            started_at=datetime.now(timezone.utc),
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> IngestionJob | None:
        return self._session.get(IngestionJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[IngestionJob]:
        stmt: Select[tuple[IngestionJob]] = select(IngestionJob)

        if job_type:
            stmt = stmt.where(IngestionJob.job_type == job_type)
        if status:
            stmt = stmt.where(IngestionJob.status == status)

        stmt = stmt.order_by(IngestionJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def lock_dataset(self, dataset_type: str) -> None:
        """
        Take a transaction-scoped advisory lock for ``dataset_type``.

        Held until the surrounding transaction commits or rolls back, so two
        ledgers checking for conflicts on the same dataset run one at a time.
        """

        key = func.hashtext(f"ingestion:{dataset_type}")
        self._session.execute(select(func.pg_advisory_xact_lock(key)))

    def list_running(self, *, dataset_type: str, for_update: bool = False) -> list[IngestionJob]:
        stmt: Select[tuple[IngestionJob]] = (
            select(IngestionJob)
            .where(IngestionJob.dataset_type == dataset_type)
            .where(IngestionJob.status == IngestionJobStatus.RUNNING)
            .order_by(IngestionJob.started_at.asc())
        )
        if for_update:
            stmt = stmt.with_for_update()
        return list(self._session.scalars(stmt).all())

    def mark_stage(self, *, job_id: uuid.UUID, stage: str) -> IngestionJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.stage = stage
        return job

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = IngestionJobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.result_payload = result_payload
        job.error_message = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = IngestionJobStatus.FAILED
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        if result_payload is not None:
            job.result_payload = result_payload
        return job
