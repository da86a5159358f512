"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.data_upload import DataUpload
from db.models.financial_records import Actual, Budget, Revenue, Transaction
from db.models.ingestion_job import IngestionJob
from db.models.portal_settings import PortalSettings
from db.models.rollups import (
    BudgetActualsYearDepartment,
    BudgetActualsYearTotals,
    RevenueYearTotals,
    TransactionYearDepartment,
    TransactionYearTotals,
    TransactionYearVendor,
)

__all__ = [
    "Actual",
    "Budget",
    "BudgetActualsYearDepartment",
    "BudgetActualsYearTotals",
    "DataUpload",
    "IngestionJob",
    "PortalSettings",
    "Revenue",
    "RevenueYearTotals",
    "Transaction",
    "TransactionYearDepartment",
    "TransactionYearTotals",
    "TransactionYearVendor",
]
