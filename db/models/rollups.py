"""
db/models/rollups.py

Pre-aggregated per-fiscal-year tables derived from the raw financial tables.

Rows are always rebuilt wholesale for one fiscal year at a time; the
composite primary keys make a rebuilt year collide loudly with any row the
delete step failed to clear.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class TransactionYearDepartment(Base):
    __tablename__ = "transaction_year_department"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    department_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    txn_count: Mapped[int] = mapped_column(BigInteger, nullable=False)


class TransactionYearVendor(Base):
    __tablename__ = "transaction_year_vendor"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    vendor: Mapped[str] = mapped_column(String(255), primary_key=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    txn_count: Mapped[int] = mapped_column(BigInteger, nullable=False)
    first_txn_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_txn_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class TransactionYearTotals(Base):
    __tablename__ = "transaction_year_totals"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    txn_count: Mapped[int] = mapped_column(BigInteger, nullable=False)


class BudgetActualsYearDepartment(Base):
    __tablename__ = "budget_actuals_year_department"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    department_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    budget_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    actual_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class BudgetActualsYearTotals(Base):
    __tablename__ = "budget_actuals_year_totals"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    actual_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class RevenueYearTotals(Base):
    __tablename__ = "revenue_year_totals"

    fiscal_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
