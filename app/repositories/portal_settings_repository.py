"""
app/repositories/portal_settings_repository.py

Read-only access to the fiscal calendar stored on the portal settings row.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import FiscalConfig
from db.models.portal_settings import PORTAL_SETTINGS_ID, PortalSettings

logger = logging.getLogger(__name__)


class PortalSettingsRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def load_fiscal_config(self) -> FiscalConfig:
        """
        Return the configured fiscal year start, or January 1.

        A missing row, a read failure or out-of-range values all fall back
        to the calendar year; read failures are logged.
        """

        try:
            settings = self._session.get(PortalSettings, PORTAL_SETTINGS_ID)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.warning("Could not read fiscal year settings; using January 1: %s", exc)
            return FiscalConfig()

        if settings is None:
            return FiscalConfig()
        return FiscalConfig.from_raw(settings.fiscal_year_start_month, settings.fiscal_year_start_day)
