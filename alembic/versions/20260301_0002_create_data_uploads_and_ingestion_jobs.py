"""create data_uploads and ingestion_jobs tables

Revision ID: 20260301_0002
Revises: 20260301_0001
Create Date: 2026-03-01 09:15:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20260301_0002"
down_revision = "20260301_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "data_uploads",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("table_name", sa.String(length=32), nullable=False),
        sa.Column("mode", sa.String(length=32), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=True),
        sa.Column("filename", sa.String(length=500), nullable=True),
        sa.Column("admin_identifier", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_data_uploads_created_at", "data_uploads", ["created_at"], unique=False)
    op.create_index(
        "ix_data_uploads_table_name_created_at",
        "data_uploads",
        ["table_name", "created_at"],
        unique=False,
    )

    op.create_table(
        "ingestion_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_type", sa.String(length=50), nullable=False, comment="upload, delete_fiscal_year"),
        sa.Column(
            "dataset_type",
            sa.String(length=32),
            nullable=False,
            comment="budgets, actuals, transactions, revenues",
        ),
        sa.Column(
            "scope_key",
            sa.Text(),
            nullable=False,
            comment="Lock scope, e.g. budgets:*, budgets:2024, budgets:append:2023,2024",
        ),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("stage", sa.String(length=32), nullable=True, comment="Last pipeline state reached"),
        sa.Column(
            "request_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Request parameters and the fiscal years the run may touch",
        ),
        sa.Column(
            "result_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Execution result metadata",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ingestion_jobs_created_at", "ingestion_jobs", ["created_at"], unique=False)
    op.create_index("ix_ingestion_jobs_status", "ingestion_jobs", ["status"], unique=False)
    op.create_index(
        "ix_ingestion_jobs_dataset_type_status",
        "ingestion_jobs",
        ["dataset_type", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_ingestion_jobs_dataset_type_status", table_name="ingestion_jobs")
    op.drop_index("ix_ingestion_jobs_status", table_name="ingestion_jobs")
    op.drop_index("ix_ingestion_jobs_created_at", table_name="ingestion_jobs")
    op.drop_table("ingestion_jobs")
    op.drop_index("ix_data_uploads_table_name_created_at", table_name="data_uploads")
    op.drop_index("ix_data_uploads_created_at", table_name="data_uploads")
    op.drop_table("data_uploads")
