"""
app/repositories/upload_audit_repository.py

Append-only access to the ``data_uploads`` audit table.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import AuditEntry, DatasetType
from db.models.data_upload import DataUpload
from db.repositories.errors import AuditPersistenceError


class UploadAuditRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_entry(self, entry: AuditEntry) -> None:
        row = DataUpload(
            table_name=entry.dataset_type.value,
            mode=entry.mode,
            row_count=entry.row_count,
            fiscal_year=entry.fiscal_year,
            filename=entry.filename,
            admin_identifier=entry.actor,
        )
        if entry.created_at is not None:
            row.created_at = entry.created_at
        try:
            self._session.add(row)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise AuditPersistenceError(f"Failed to record upload audit entry: {exc}") from exc

    def list_recent(self, *, limit: int, dataset_type: DatasetType | None = None) -> list[AuditEntry]:
        stmt = select(DataUpload).order_by(DataUpload.created_at.desc(), DataUpload.id.desc()).limit(max(1, limit))
        if dataset_type is not None:
            stmt = stmt.where(DataUpload.table_name == dataset_type.value)
        try:
            rows = self._session.scalars(stmt).all()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise AuditPersistenceError(f"Failed to read upload history: {exc}") from exc

        return [
            AuditEntry(
                dataset_type=DatasetType(row.table_name),
                mode=row.mode,
                row_count=row.row_count,
                actor=row.admin_identifier,
                fiscal_year=row.fiscal_year,
                filename=row.filename,
                created_at=row.created_at,
            )
            for row in rows
        ]
