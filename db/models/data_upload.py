"""
db/models/data_upload.py

Append-only audit trail of upload and fiscal-year deletion attempts.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class DataUpload(Base, CreatedAtMixin):
    """
    One row per completed ingestion attempt.

    ``row_count`` is signed: uploads record the number of inserted rows,
    fiscal-year deletions record the negated number of deleted rows.
    """

    __tablename__ = "data_uploads"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(String(32), nullable=False)
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    row_count: Mapped[int] = mapped_column(Integer, nullable=False)
    fiscal_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    filename: Mapped[str | None] = mapped_column(String(500), nullable=True)
    admin_identifier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_data_uploads_created_at", "created_at"),
        Index("ix_data_uploads_table_name_created_at", "table_name", "created_at"),
    )
