"""
db/models/portal_settings.py

Portal-level settings row. Only the fiscal calendar columns are read here.
"""

from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

PORTAL_SETTINGS_ID = 1


class PortalSettings(Base, TimestampMixin):
    __tablename__ = "portal_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fiscal_year_start_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fiscal_year_start_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fiscal_year_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
