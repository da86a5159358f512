"""
app/services package marker.
"""

from app.services.ingestion_errors import (
    ChunkWriteError,
    DeletionError,
    IngestionConflictError,
    IngestionError,
    IngestionRequestError,
    IngestionTimeoutError,
    RecordValidationError,
    RollupRecomputeError,
    SchemaValidationError,
)
from app.services.upload_ingestion_service import (
    IngestionRepositories,
    UploadIngestionService,
    get_upload_ingestion_service,
)

__all__ = [
    "ChunkWriteError",
    "DeletionError",
    "IngestionConflictError",
    "IngestionError",
    "IngestionRepositories",
    "IngestionRequestError",
    "IngestionTimeoutError",
    "RecordValidationError",
    "RollupRecomputeError",
    "SchemaValidationError",
    "UploadIngestionService",
    "get_upload_ingestion_service",
]
