"""
app/repositories/rollup_repository.py

Rebuilds the per-year rollup tables from the raw dataset tables.

Each rebuild is delete-then-insert for a single fiscal year inside one
transaction, so readers never see a half-built year.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import Table, delete, func, insert, literal, select, union_all
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import DatasetType
from db.models.financial_records import Actual, Budget, Revenue, Transaction
from db.models.rollups import (
    BudgetActualsYearDepartment,
    BudgetActualsYearTotals,
    RevenueYearTotals,
    TransactionYearDepartment,
    TransactionYearTotals,
    TransactionYearVendor,
)
from db.repositories.errors import RollupPersistenceError

logger = logging.getLogger(__name__)

ROLLUP_TABLES: dict[str, Table] = {
    model.__tablename__: model.__table__
    for model in (
        TransactionYearDepartment,
        TransactionYearVendor,
        TransactionYearTotals,
        BudgetActualsYearDepartment,
        BudgetActualsYearTotals,
        RevenueYearTotals,
    )
}

_ZERO = literal(Decimal("0"))


class RollupRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def recompute_transaction_summaries(self, fiscal_year: int) -> None:
        by_department = (
            select(
                Transaction.fiscal_year,
                Transaction.department_name,
                func.coalesce(func.sum(Transaction.amount), 0),
                func.count(),
            )
            .where(Transaction.fiscal_year == fiscal_year)
            .group_by(Transaction.fiscal_year, Transaction.department_name)
        )
        by_vendor = (
            select(
                Transaction.fiscal_year,
                Transaction.vendor,
                func.coalesce(func.sum(Transaction.amount), 0),
                func.count(),
                func.min(Transaction.date),
                func.max(Transaction.date),
            )
            .where(Transaction.fiscal_year == fiscal_year)
            .group_by(Transaction.fiscal_year, Transaction.vendor)
        )

        department_table = TransactionYearDepartment.__table__
        vendor_table = TransactionYearVendor.__table__
        self._rebuild(
            fiscal_year,
            (department_table, vendor_table),
            [
                insert(department_table).from_select(
                    ["fiscal_year", "department_name", "total_amount", "txn_count"],
                    by_department,
                ),
                insert(vendor_table).from_select(
                    ["fiscal_year", "vendor", "total_amount", "txn_count", "first_txn_date", "last_txn_date"],
                    by_vendor,
                ),
            ],
        )

    def recompute_budget_actuals_summaries(self, fiscal_year: int) -> None:
        combined = union_all(
            select(
                Budget.department_name.label("department_name"),
                Budget.amount.label("budget_amount"),
                _ZERO.label("actual_amount"),
            ).where(Budget.fiscal_year == fiscal_year),
            select(
                Actual.department_name.label("department_name"),
                _ZERO.label("budget_amount"),
                Actual.amount.label("actual_amount"),
            ).where(Actual.fiscal_year == fiscal_year),
        ).subquery("combined")

        by_department = select(
            literal(fiscal_year),
            combined.c.department_name,
            func.sum(combined.c.budget_amount),
            func.sum(combined.c.actual_amount),
        ).group_by(combined.c.department_name)

        table = BudgetActualsYearDepartment.__table__
        self._rebuild(
            fiscal_year,
            (table,),
            [
                insert(table).from_select(
                    ["fiscal_year", "department_name", "budget_amount", "actual_amount"],
                    by_department,
                )
            ],
        )

    def refresh_year_totals(self, dataset_type: DatasetType, fiscal_year: int) -> None:
        if dataset_type is DatasetType.TRANSACTIONS:
            table = TransactionYearTotals.__table__
            source = select(
                Transaction.fiscal_year,
                func.coalesce(func.sum(Transaction.amount), 0),
                func.count(),
            ).where(Transaction.fiscal_year == fiscal_year).group_by(Transaction.fiscal_year)
            statement = insert(table).from_select(["fiscal_year", "total_amount", "txn_count"], source)
        elif dataset_type is DatasetType.REVENUES:
            table = RevenueYearTotals.__table__
            source = select(
                Revenue.fiscal_year,
                func.coalesce(func.sum(Revenue.amount), 0),
            ).where(Revenue.fiscal_year == fiscal_year).group_by(Revenue.fiscal_year)
            statement = insert(table).from_select(["fiscal_year", "total_amount"], source)
        else:
            table = BudgetActualsYearTotals.__table__
            department = BudgetActualsYearDepartment.__table__
            source = select(
                department.c.fiscal_year,
                func.sum(department.c.budget_amount),
                func.sum(department.c.actual_amount),
            ).where(department.c.fiscal_year == fiscal_year).group_by(department.c.fiscal_year)
            statement = insert(table).from_select(["fiscal_year", "budget_amount", "actual_amount"], source)

        self._rebuild(fiscal_year, (table,), [statement])

    def purge(self, table_name: str, fiscal_year: int | None) -> int:
        table = ROLLUP_TABLES.get(table_name)
        if table is None:
            raise RollupPersistenceError(f"Unknown rollup table: {table_name}")

        stmt = delete(table)
        if fiscal_year is not None:
            stmt = stmt.where(table.c.fiscal_year == fiscal_year)
        try:
            result = self._session.execute(stmt)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RollupPersistenceError(f"Failed to purge {table_name}: {exc}") from exc
        return int(result.rowcount or 0)

    def _rebuild(self, fiscal_year: int, tables: tuple[Table, ...], statements: list) -> None:
        try:
            for table in tables:
                self._session.execute(delete(table).where(table.c.fiscal_year == fiscal_year))
            for statement in statements:
                self._session.execute(statement)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            names = ", ".join(table.name for table in tables)
            raise RollupPersistenceError(f"Failed to rebuild {names} for fiscal year {fiscal_year}: {exc}") from exc
