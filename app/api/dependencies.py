"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import Depends, File, Header, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.repositories import build_ingestion_repositories
from app.services.upload_ingestion_service import IngestionRepositories
from db.session import get_db

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"ok": False, "error": "Only CSV files are allowed."},
        )

    return file


def get_actor(x_actor_id: str | None = Header(default=None, max_length=255)) -> str | None:
    """
    Identifier of the authenticated admin, set by the upstream auth proxy.
    """

    if x_actor_id is None:
        return None
    actor = x_actor_id.strip()
    return actor or None


def get_ingestion_repositories(db: Session = Depends(get_db)) -> IngestionRepositories:
    return build_ingestion_repositories(db)
