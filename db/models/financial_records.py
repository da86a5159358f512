"""
db/models/financial_records.py

Raw financial tables written by the bulk upload pipeline.

One table per dataset type. Every row carries a resolved integer
``fiscal_year``; actuals, transactions and revenues also carry the
derived ``fiscal_period`` (1-12) when it could be computed.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, FinancialLineMixin

_FISCAL_PERIOD_CHECK = "fiscal_period IS NULL OR (fiscal_period >= 1 AND fiscal_period <= 12)"


class Budget(Base, FinancialLineMixin):
    __tablename__ = "budgets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    department_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        Index("ix_budgets_fiscal_year", "fiscal_year"),
        Index("ix_budgets_fiscal_year_department", "fiscal_year", "department_name"),
    )


class Actual(Base, FinancialLineMixin):
    __tablename__ = "actuals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    fiscal_period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period: Mapped[str | None] = mapped_column(
        String(7),
        nullable=True,
        comment="Canonical YYYY-MM reporting month",
    )
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    department_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_actuals_fiscal_period"),
        Index("ix_actuals_fiscal_year", "fiscal_year"),
        Index("ix_actuals_fiscal_year_department", "fiscal_year", "department_name"),
    )


class Transaction(Base, FinancialLineMixin):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    fiscal_period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    department_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_transactions_fiscal_period"),
        Index("ix_transactions_fiscal_year", "fiscal_year"),
        Index("ix_transactions_fiscal_year_department", "fiscal_year", "department_name"),
        Index("ix_transactions_fiscal_year_vendor", "fiscal_year", "vendor"),
    )


class Revenue(Base, FinancialLineMixin):
    __tablename__ = "revenues"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    fiscal_period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period: Mapped[str | None] = mapped_column(String(7), nullable=True)
    date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    department_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_revenues_fiscal_period"),
        Index("ix_revenues_fiscal_year", "fiscal_year"),
    )
