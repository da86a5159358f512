"""create raw financial, rollup and portal_settings tables

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None

_FISCAL_PERIOD_CHECK = "fiscal_period IS NULL OR (fiscal_period >= 1 AND fiscal_period <= 12)"


def _line_coding_columns() -> list[sa.Column]:
    return [
        sa.Column("fund_code", sa.String(length=64), nullable=True),
        sa.Column("fund_name", sa.String(length=255), nullable=True),
        sa.Column("department_code", sa.String(length=64), nullable=True),
        sa.Column("account_code", sa.String(length=64), nullable=True),
        sa.Column("account_name", sa.String(length=255), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "budgets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("department_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(), nullable=False),
        *_line_coding_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_budgets_fiscal_year", "budgets", ["fiscal_year"], unique=False)
    op.create_index(
        "ix_budgets_fiscal_year_department",
        "budgets",
        ["fiscal_year", "department_name"],
        unique=False,
    )

    op.create_table(
        "actuals",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("fiscal_period", sa.Integer(), nullable=True),
        sa.Column("period", sa.String(length=7), nullable=True, comment="Canonical YYYY-MM reporting month"),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("department_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(), nullable=False),
        *_line_coding_columns(),
        sa.CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_actuals_fiscal_period"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_actuals_fiscal_year", "actuals", ["fiscal_year"], unique=False)
    op.create_index(
        "ix_actuals_fiscal_year_department",
        "actuals",
        ["fiscal_year", "department_name"],
        unique=False,
    )

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("fiscal_period", sa.Integer(), nullable=True),
        sa.Column("department_name", sa.String(length=255), nullable=False),
        sa.Column("vendor", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(), nullable=False),
        *_line_coding_columns(),
        sa.CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_transactions_fiscal_period"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_fiscal_year", "transactions", ["fiscal_year"], unique=False)
    op.create_index(
        "ix_transactions_fiscal_year_department",
        "transactions",
        ["fiscal_year", "department_name"],
        unique=False,
    )
    op.create_index(
        "ix_transactions_fiscal_year_vendor",
        "transactions",
        ["fiscal_year", "vendor"],
        unique=False,
    )

    op.create_table(
        "revenues",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("fiscal_period", sa.Integer(), nullable=True),
        sa.Column("period", sa.String(length=7), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("department_name", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(), nullable=False),
        *_line_coding_columns(),
        sa.CheckConstraint(_FISCAL_PERIOD_CHECK, name="ck_revenues_fiscal_period"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_revenues_fiscal_year", "revenues", ["fiscal_year"], unique=False)

    op.create_table(
        "transaction_year_department",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("department_name", sa.String(length=255), nullable=False),
        sa.Column("total_amount", sa.Numeric(), nullable=False),
        sa.Column("txn_count", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("fiscal_year", "department_name"),
    )
    op.create_table(
        "transaction_year_vendor",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("vendor", sa.String(length=255), nullable=False),
        sa.Column("total_amount", sa.Numeric(), nullable=False),
        sa.Column("txn_count", sa.BigInteger(), nullable=False),
        sa.Column("first_txn_date", sa.Date(), nullable=True),
        sa.Column("last_txn_date", sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint("fiscal_year", "vendor"),
    )
    op.create_table(
        "transaction_year_totals",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(), nullable=False),
        sa.Column("txn_count", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("fiscal_year"),
    )
    op.create_table(
        "budget_actuals_year_department",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("department_name", sa.String(length=255), nullable=False),
        sa.Column("budget_amount", sa.Numeric(), nullable=False),
        sa.Column("actual_amount", sa.Numeric(), nullable=False),
        sa.PrimaryKeyConstraint("fiscal_year", "department_name"),
    )
    op.create_table(
        "budget_actuals_year_totals",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("budget_amount", sa.Numeric(), nullable=False),
        sa.Column("actual_amount", sa.Numeric(), nullable=False),
        sa.PrimaryKeyConstraint("fiscal_year"),
    )
    op.create_table(
        "revenue_year_totals",
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(), nullable=False),
        sa.PrimaryKeyConstraint("fiscal_year"),
    )

    op.create_table(
        "portal_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fiscal_year_start_month", sa.Integer(), nullable=True),
        sa.Column("fiscal_year_start_day", sa.Integer(), nullable=True),
        sa.Column("fiscal_year_label", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("portal_settings")
    op.drop_table("revenue_year_totals")
    op.drop_table("budget_actuals_year_totals")
    op.drop_table("budget_actuals_year_department")
    op.drop_table("transaction_year_totals")
    op.drop_table("transaction_year_vendor")
    op.drop_table("transaction_year_department")
    op.drop_index("ix_revenues_fiscal_year", table_name="revenues")
    op.drop_table("revenues")
    op.drop_index("ix_transactions_fiscal_year_vendor", table_name="transactions")
    op.drop_index("ix_transactions_fiscal_year_department", table_name="transactions")
    op.drop_index("ix_transactions_fiscal_year", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_actuals_fiscal_year_department", table_name="actuals")
    op.drop_index("ix_actuals_fiscal_year", table_name="actuals")
    op.drop_table("actuals")
    op.drop_index("ix_budgets_fiscal_year_department", table_name="budgets")
    op.drop_index("ix_budgets_fiscal_year", table_name="budgets")
    op.drop_table("budgets")
