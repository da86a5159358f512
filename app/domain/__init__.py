"""
app/domain package marker.
"""

from app.domain.ingestion import (
    DatasetType,
    FiscalConfig,
    HeaderIssue,
    IngestionRequest,
    RowIssue,
    UploadMode,
    UploadModeKind,
    UploadResult,
)

__all__ = [
    "DatasetType",
    "FiscalConfig",
    "HeaderIssue",
    "IngestionRequest",
    "RowIssue",
    "UploadMode",
    "UploadModeKind",
    "UploadResult",
]
