"""
app/services/ingestion_errors.py

Exceptions raised by the bulk upload pipeline.

    IngestionRequestError    bad request shape, nothing touched        400
    SchemaValidationError    header defects, nothing touched           400
    RecordValidationError    row defects, nothing touched              400
    IngestionConflictError   a conflicting run holds the scope         409
    DeletionError            destructive step failed, nothing inserted 500
    ChunkWriteError          a chunk failed, earlier chunks committed  500
    IngestionTimeoutError    run budget exhausted mid-write            500
    RollupRecomputeError     data written, rollups stale               500
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from app.domain.ingestion import HeaderIssue, UploadResult, ValidationIssue

DEFAULT_ISSUE_SAMPLE_SIZE = 100


class IngestionError(Exception):
    """
    Base class for pipeline failures reported to the caller.
    """

    def to_dict(self, *, issue_limit: int = DEFAULT_ISSUE_SAMPLE_SIZE) -> dict[str, Any]:
        return {"ok": False, "error": str(self)}


class IngestionRequestError(IngestionError, ValueError):
    """
    Raised when the request itself is unusable (unknown mode, empty batch,
    missing replace year, missing replace-table confirmation, too many rows).
    """


class _IssueCarryingError(IngestionError, ValueError):
    def __init__(self, message: str, issues: Sequence[ValidationIssue]) -> None:
        super().__init__(message)
        self.issues = tuple(issues)

    def to_dict(self, *, issue_limit: int = DEFAULT_ISSUE_SAMPLE_SIZE) -> dict[str, Any]:
        limit = max(1, issue_limit)
        shown = self.issues[:limit]
        return {
            "ok": False,
            "error": str(self),
            "issues": [issue_to_dict(issue) for issue in shown],
            "remainingIssueCount": len(self.issues) - len(shown),
        }


class SchemaValidationError(_IssueCarryingError):
    """
    Raised when the header row is unusable (duplicate or missing columns).
    """


class RecordValidationError(_IssueCarryingError):
    """
    Raised when one or more data rows failed validation or normalization.
    """


class IngestionConflictError(IngestionError):
    """
    Raised when another run holds a conflicting dataset scope.
    """


class DeletionError(IngestionError, RuntimeError):
    """
    Raised when existing rows could not be cleared; no rows were inserted.
    """


class ChunkWriteError(IngestionError, RuntimeError):
    """
    Raised when a chunk failed to persist. Earlier chunks stay committed.
    """

    def __init__(self, message: str, result: UploadResult) -> None:
        super().__init__(message)
        self.result = result

    def to_dict(self, *, issue_limit: int = DEFAULT_ISSUE_SAMPLE_SIZE) -> dict[str, Any]:
        return {"ok": False, "error": str(self), "details": self.result.to_details()}


class IngestionTimeoutError(ChunkWriteError):
    """
    Raised when the run budget ran out before every chunk was submitted.
    """


class RollupRecomputeError(IngestionError, RuntimeError):
    """
    Raised when a primary rollup could not be rebuilt after the raw data
    was already written.
    """

    def __init__(self, message: str, *, fiscal_year: int | None = None) -> None:
        super().__init__(message)
        self.fiscal_year = fiscal_year


def issue_to_dict(issue: ValidationIssue) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "row": issue.row,
        "field": issue.field,
        "message": issue.message,
    }
    if not isinstance(issue, HeaderIssue):
        payload["value"] = issue.value
    return payload
