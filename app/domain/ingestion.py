"""
app/domain/ingestion.py

Domain types shared by the bulk upload pipeline.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class DatasetType(str, Enum):
    BUDGETS = "budgets"
    ACTUALS = "actuals"
    TRANSACTIONS = "transactions"
    REVENUES = "revenues"


class UploadModeKind(str, Enum):
    APPEND = "append"
    REPLACE_YEAR = "replace_year"
    REPLACE_TABLE = "replace_table"


class IngestionState(str, Enum):
    """
    Pipeline states recorded on the run ledger as ``stage``.
    """

    VALIDATING = "validating"
    APPENDING = "appending"
    REPLACING_YEAR = "replacing_year"
    REPLACING_TABLE = "replacing_table"
    WRITING = "writing"
    RECOMPUTING = "recomputing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadMode:
    """
    Replacement strategy plus the parameter that bounds its deletion scope.
    """

    kind: UploadModeKind
    year: int | None = None

    @classmethod
    def append(cls) -> UploadMode:
        return cls(UploadModeKind.APPEND)

    @classmethod
    def replace_year(cls, year: int) -> UploadMode:
        return cls(UploadModeKind.REPLACE_YEAR, year)

    @classmethod
    def replace_table(cls) -> UploadMode:
        return cls(UploadModeKind.REPLACE_TABLE)

    @property
    def is_destructive(self) -> bool:
        return self.kind is not UploadModeKind.APPEND

    @property
    def value(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class FiscalConfig:
    """
    Fiscal year start (month, day). Defaults to January 1.
    """

    start_month: int = 1
    start_day: int = 1

    @classmethod
    def from_raw(cls, raw_month: Any, raw_day: Any) -> FiscalConfig:
        """
        Build a config from loosely typed settings values.

        Anything non-numeric or outside [1, 12] / [1, 31] falls back to 1.
        """

        return cls(
            start_month=_clamped_int(raw_month, 1, 12),
            start_day=_clamped_int(raw_day, 1, 31),
        )

    @property
    def is_calendar_year(self) -> bool:
        return self.start_month == 1 and self.start_day == 1


def _clamped_int(raw: Any, low: int, high: int) -> int:
    if raw is None or isinstance(raw, bool):
        return 1
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 1
    if not number.is_integer() or not low <= number <= high:
        return 1
    return int(number)


@dataclass(frozen=True)
class HeaderIssue:
    """
    File-level defect. Any header issue stops validation of the batch.
    """

    message: str
    field: str | None = None

    @property
    def row(self) -> None:
        return None


@dataclass(frozen=True)
class RowIssue:
    """
    Defect in one data row. ``row`` is the 1-based file line (header = 1).
    """

    row: int
    message: str
    field: str | None = None
    value: str | None = None


ValidationIssue = Union[HeaderIssue, RowIssue]


@dataclass(frozen=True)
class ParsedRecord:
    """
    One data row after header mapping and type coercion.
    """

    row_number: int
    values: dict[str, Any]


@dataclass(frozen=True)
class ValidationReport:
    records: list[ParsedRecord]
    years_present: frozenset[int]
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_header_issues(self) -> bool:
        return any(isinstance(issue, HeaderIssue) for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class UploadResult:
    """
    Outcome of the chunked write step.

    ``failed_at_chunk_index`` is the zero-based offset of the first record of
    the chunk that was not written, or None when every chunk was written.
    """

    inserted_count: int
    attempted_count: int
    failed_at_chunk_index: int | None = None
    affected_fiscal_years: frozenset[int] = frozenset()
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.failed_at_chunk_index is None

    def to_details(self) -> dict[str, int | None]:
        return {
            "attemptedRows": self.attempted_count,
            "successfullyInsertedRows": self.inserted_count,
            "failedAtIndex": self.failed_at_chunk_index,
        }


@dataclass(frozen=True)
class IngestionRequest:
    """
    Transport-agnostic upload request: a header row plus raw data rows.
    """

    dataset_type: DatasetType
    mode: UploadMode
    header: list[str]
    rows: list[list[str]]
    confirm_replace_table: bool = False
    filename: str | None = None

    @property
    def record_count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class IngestionOutcome:
    dataset_type: DatasetType
    mode: UploadMode
    result: UploadResult
    recomputed_fiscal_years: tuple[int, ...]
    message: str


@dataclass(frozen=True)
class DeletionOutcome:
    dataset_type: DatasetType
    fiscal_year: int
    deleted_count: int
    message: str


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable summary of one ingestion attempt.

    ``row_count`` is negative for pure-delete events.
    """

    dataset_type: DatasetType
    mode: str
    row_count: int
    actor: str | None
    fiscal_year: int | None = None
    filename: str | None = None
    created_at: datetime | None = None


class RunDeadline:
    """
    Wall-clock budget for one run, measured on a monotonic clock.
    """

    def __init__(self, budget_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._budget_seconds = budget_seconds
        self._expires_at = clock() + budget_seconds

    @property
    def budget_seconds(self) -> float:
        return self._budget_seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self._expires_at


@dataclass(frozen=True)
class RunTicket:
    """
    Handle on a run ledger entry.

    ``interrupted_fiscal_years`` lists years touched by stale runs on a
    conflicting scope that were taken over by this run.
    """

    job_id: Any
    interrupted_fiscal_years: frozenset[int] = frozenset()
