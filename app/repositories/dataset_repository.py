"""
app/repositories/dataset_repository.py

Persistence for the raw budgets / actuals / transactions / revenues tables.

``insert_chunk``, ``delete_fiscal_year`` and ``delete_all`` each commit:
a chunk is the unit of partial progress, and a delete must be durable
before any insert begins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import DatasetType
from db.models.financial_records import Actual, Budget, Revenue, Transaction
from db.repositories.errors import DatasetPersistenceError

logger = logging.getLogger(__name__)

DATASET_MODELS: dict[DatasetType, type[Budget] | type[Actual] | type[Transaction] | type[Revenue]] = {
    DatasetType.BUDGETS: Budget,
    DatasetType.ACTUALS: Actual,
    DatasetType.TRANSACTIONS: Transaction,
    DatasetType.REVENUES: Revenue,
}


class DatasetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_chunk(self, dataset_type: DatasetType, rows: Sequence[Mapping[str, Any]]) -> int:
        if not rows:
            return 0

        model = DATASET_MODELS[dataset_type]
        columns = {column.key for column in model.__table__.columns} - {"id", "created_at"}
        payloads = [{key: value for key, value in row.items() if key in columns} for row in rows]

        try:
            self._session.execute(insert(model), payloads)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise DatasetPersistenceError(f"Failed to insert {dataset_type.value} rows: {exc}") from exc
        return len(payloads)

    def delete_fiscal_year(self, dataset_type: DatasetType, fiscal_year: int) -> int:
        model = DATASET_MODELS[dataset_type]
        return self._delete(dataset_type, delete(model).where(model.fiscal_year == fiscal_year))

    def delete_all(self, dataset_type: DatasetType) -> int:
        return self._delete(dataset_type, delete(DATASET_MODELS[dataset_type]))

    def list_fiscal_years(self, dataset_type: DatasetType) -> list[int]:
        model = DATASET_MODELS[dataset_type]
        stmt = select(model.fiscal_year).distinct().order_by(model.fiscal_year.desc())
        try:
            return [int(year) for year in self._session.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise DatasetPersistenceError(f"Failed to list {dataset_type.value} fiscal years: {exc}") from exc

    def _delete(self, dataset_type: DatasetType, stmt: Any) -> int:
        try:
            result = self._session.execute(stmt)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise DatasetPersistenceError(f"Failed to delete {dataset_type.value} rows: {exc}") from exc
        return int(result.rowcount or 0)
