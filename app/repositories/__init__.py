"""
app/repositories package marker.
"""

from sqlalchemy.orm import Session

from app.repositories.dataset_repository import DatasetRepository
from app.repositories.portal_settings_repository import PortalSettingsRepository
from app.repositories.rollup_repository import RollupRepository
from app.repositories.run_ledger_repository import SqlRunLedger
from app.repositories.upload_audit_repository import UploadAuditRepository
from app.services.upload_ingestion_service import IngestionRepositories


def build_ingestion_repositories(db: Session) -> IngestionRepositories:
    """
    Bind every pipeline collaborator to one request-scoped session.
    """

    return IngestionRepositories(
        datasets=DatasetRepository(db),
        rollups=RollupRepository(db),
        audit=UploadAuditRepository(db),
        settings=PortalSettingsRepository(db),
        ledger=SqlRunLedger(db),
    )


__all__ = [
    "DatasetRepository",
    "PortalSettingsRepository",
    "RollupRepository",
    "SqlRunLedger",
    "UploadAuditRepository",
    "build_ingestion_repositories",
]
