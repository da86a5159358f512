"""
app/schemas package marker.
"""

from app.schemas.upload_ingestion import (
    DeleteFiscalYearRequest,
    DeleteFiscalYearResponse,
    UploadHistoryEntryResponse,
    UploadHistoryResponse,
    UploadIngestionRequest,
    UploadIngestionResponse,
)

__all__ = [
    "DeleteFiscalYearRequest",
    "DeleteFiscalYearResponse",
    "UploadHistoryEntryResponse",
    "UploadHistoryResponse",
    "UploadIngestionRequest",
    "UploadIngestionResponse",
]
