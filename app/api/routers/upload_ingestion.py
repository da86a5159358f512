"""
app/api/routers/upload_ingestion.py

Admin endpoints for bulk financial dataset uploads.

Endpoints are synchronous and run in the worker threadpool, so a client
disconnect does not interrupt a run that has started writing.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, Form, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_actor, get_csv_upload, get_ingestion_repositories
from app.domain.ingestion import DatasetType, IngestionOutcome, UploadMode, UploadModeKind
from app.parsing.csv_parser import TabularParseError, decode_upload
from app.schemas.upload_ingestion import (
    DatasetTypeName,
    DeleteFiscalYearRequest,
    DeleteFiscalYearResponse,
    UploadHistoryEntryResponse,
    UploadHistoryResponse,
    UploadIngestionRequest,
    UploadIngestionResponse,
    UploadModeName,
)
from app.services.ingestion_errors import (
    IngestionConflictError,
    IngestionError,
    IngestionRequestError,
    RecordValidationError,
    SchemaValidationError,
)
from app.services.upload_ingestion_service import (
    IngestionRepositories,
    UploadIngestionService,
    get_upload_ingestion_service,
    request_from_csv_text,
    request_from_records,
)

router = APIRouter(prefix="/admin/uploads", tags=["uploads"])


@router.post("", response_model=UploadIngestionResponse)
def upload_records(
    payload: UploadIngestionRequest,
    actor: str | None = Depends(get_actor),
    repositories: IngestionRepositories = Depends(get_ingestion_repositories),
    ingestion_service: UploadIngestionService = Depends(get_upload_ingestion_service),
) -> UploadIngestionResponse:
    """
    Ingest a JSON batch of records into one dataset.
    """

    request = request_from_records(
        dataset_type=DatasetType(payload.dataset_type),
        mode=_build_mode(payload.mode, payload.replace_year),
        records=payload.records,
        confirm_replace_table=payload.confirm_replace_table,
        filename=payload.filename,
    )
    try:
        outcome = ingestion_service.ingest(request=request, repositories=repositories, actor=actor)
    except IngestionError as exc:
        _raise_http_error(exc, ingestion_service)
    return _to_response(outcome)


@router.post("/csv", response_model=UploadIngestionResponse)
def upload_csv(
    file: UploadFile = Depends(get_csv_upload),
    dataset_type: DatasetTypeName = Form(...),
    mode: UploadModeName = Form(default="append"),
    replace_year: int | None = Form(default=None),
    confirm_replace_table: bool = Form(default=False),
    actor: str | None = Depends(get_actor),
    repositories: IngestionRepositories = Depends(get_ingestion_repositories),
    ingestion_service: UploadIngestionService = Depends(get_upload_ingestion_service),
) -> UploadIngestionResponse:
    """
    Ingest one CSV file into one dataset.
    """

    try:
        text = decode_upload(file.file.read())
        request = request_from_csv_text(
            dataset_type=DatasetType(dataset_type),
            mode=_build_mode(mode, replace_year),
            text=text,
            confirm_replace_table=confirm_replace_table,
            filename=file.filename,
        )
    except TabularParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"ok": False, "error": str(exc)},
        ) from exc
    finally:
        file.file.close()

    try:
        outcome = ingestion_service.ingest(request=request, repositories=repositories, actor=actor)
    except IngestionError as exc:
        _raise_http_error(exc, ingestion_service)
    return _to_response(outcome)


@router.post("/delete-fiscal-year", response_model=DeleteFiscalYearResponse)
def delete_fiscal_year(
    payload: DeleteFiscalYearRequest,
    actor: str | None = Depends(get_actor),
    repositories: IngestionRepositories = Depends(get_ingestion_repositories),
    ingestion_service: UploadIngestionService = Depends(get_upload_ingestion_service),
) -> DeleteFiscalYearResponse:
    try:
        outcome = ingestion_service.delete_fiscal_year(
            dataset_type=DatasetType(payload.dataset_type),
            fiscal_year=payload.fiscal_year,
            repositories=repositories,
            actor=actor,
        )
    except IngestionError as exc:
        _raise_http_error(exc, ingestion_service)

    return DeleteFiscalYearResponse(
        dataset_type=outcome.dataset_type.value,
        fiscal_year=outcome.fiscal_year,
        deleted_count=outcome.deleted_count,
        message=outcome.message,
    )


@router.get("/history", response_model=UploadHistoryResponse)
def upload_history(
    limit: int = Query(default=50, ge=1, le=500),
    dataset_type: DatasetTypeName | None = Query(default=None, alias="datasetType"),
    repositories: IngestionRepositories = Depends(get_ingestion_repositories),
    ingestion_service: UploadIngestionService = Depends(get_upload_ingestion_service),
) -> UploadHistoryResponse:
    entries = ingestion_service.list_history(
        repositories=repositories,
        limit=limit,
        dataset_type=DatasetType(dataset_type) if dataset_type else None,
    )
    return UploadHistoryResponse(
        entries=[
            UploadHistoryEntryResponse(
                dataset_type=entry.dataset_type.value,
                mode=entry.mode,
                row_count=entry.row_count,
                fiscal_year=entry.fiscal_year,
                filename=entry.filename,
                actor=entry.actor,
                created_at=entry.created_at,
            )
            for entry in entries
        ]
    )


def _build_mode(mode: str, replace_year: int | None) -> UploadMode:
    kind = UploadModeKind(mode)
    if kind is UploadModeKind.REPLACE_YEAR:
        return UploadMode(kind, replace_year)
    return UploadMode(kind)


def _to_response(outcome: IngestionOutcome) -> UploadIngestionResponse:
    return UploadIngestionResponse(
        dataset_type=outcome.dataset_type.value,
        mode=outcome.mode.value,
        inserted_count=outcome.result.inserted_count,
        affected_fiscal_years=sorted(outcome.result.affected_fiscal_years),
        recomputed_fiscal_years=list(outcome.recomputed_fiscal_years),
        message=outcome.message,
    )


def _raise_http_error(exc: IngestionError, ingestion_service: UploadIngestionService) -> NoReturn:
    if isinstance(exc, (IngestionRequestError, SchemaValidationError, RecordValidationError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, IngestionConflictError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    raise HTTPException(
        status_code=status_code,
        detail=exc.to_dict(issue_limit=ingestion_service.settings.max_reported_issues),
    ) from exc
