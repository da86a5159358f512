"""
db/base.py

Declarative base and shared column mixins for the ledger models.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    All models must inherit from this class.
    """

    type_annotation_map: dict[type, Any] = {
        Decimal: Numeric(),
    }


class CreatedAtMixin:
    """
    Adds a server-populated created_at column. Rows using this mixin are
    written once and never updated by the ingestion pipeline.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class TimestampMixin(CreatedAtMixin):
    """
    Adds created_at and updated_at; updated_at is refreshed on every UPDATE.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class FinancialLineMixin:
    """
    Fund / department / account coding shared by the raw financial tables.
    """

    fund_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    fund_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    account_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    account_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
