"""
db/models/ingestion_job.py

Run ledger for bulk uploads and fiscal-year deletions.

A row is created in ``running`` state once a request has passed validation
and before anything destructive happens. It doubles as the in-progress
marker: a ``running`` row that outlives the run budget belongs to an
interrupted attempt.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class IngestionJobType:
    UPLOAD = "upload"
    DELETE_FISCAL_YEAR = "delete_fiscal_year"


class IngestionJobStatus:
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class IngestionJob(Base, TimestampMixin):
    __tablename__ = "ingestion_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    job_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="upload, delete_fiscal_year",
    )
    dataset_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="budgets, actuals, transactions, revenues",
    )
    scope_key: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Lock scope, e.g. budgets:*, budgets:2024, budgets:append:2023,2024",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=IngestionJobStatus.RUNNING,
    )
    stage: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="Last pipeline state reached",
    )
    request_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Request parameters and the fiscal years the run may touch",
    )
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Execution result metadata",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_ingestion_jobs_status", "status"),
        Index("ix_ingestion_jobs_created_at", "created_at"),
        Index("ix_ingestion_jobs_dataset_type_status", "dataset_type", "status"),
    )
