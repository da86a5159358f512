"""
app/services/scope_locks.py

In-process mutual exclusion for ingestion runs.

A scope names what a run may delete or write:

    budgets:*                replace_table, or any run that owns the whole dataset
    budgets:2024             replace_year 2024, or delete of fiscal year 2024
    budgets:append:2023,2024 append carrying rows for fiscal years 2023 and 2024

``*`` conflicts with every scope on the same dataset. A year conflicts
with the same year and with any append that writes rows for it. Appends
never conflict with each other.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from app.domain.ingestion import DatasetType, UploadMode, UploadModeKind
from app.services.ingestion_errors import IngestionConflictError

logger = logging.getLogger(__name__)

_TABLE = "*"
_APPEND = "append"
_YEAR = "year"


@dataclass(frozen=True)
class IngestionScope:
    dataset_type: DatasetType
    kind: str
    fiscal_year: int | None = None
    fiscal_years: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def for_mode(
        cls,
        dataset_type: DatasetType,
        mode: UploadMode,
        fiscal_years: Iterable[int] = (),
    ) -> IngestionScope:
        """
        Scope for an upload. ``fiscal_years`` are the years the batch writes;
        only appends record them, since the other modes already own more.
        """

        if mode.kind is UploadModeKind.REPLACE_TABLE:
            return cls(dataset_type, _TABLE)
        if mode.kind is UploadModeKind.REPLACE_YEAR:
            return cls(dataset_type, _YEAR, mode.year)
        return cls(dataset_type, _APPEND, fiscal_years=frozenset(fiscal_years))

    @classmethod
    def for_year(cls, dataset_type: DatasetType, fiscal_year: int) -> IngestionScope:
        return cls(dataset_type, _YEAR, fiscal_year)

    @property
    def key(self) -> str:
        if self.kind == _YEAR:
            return f"{self.dataset_type.value}:{self.fiscal_year}"
        if self.kind == _APPEND and self.fiscal_years:
            years = ",".join(str(year) for year in sorted(self.fiscal_years))
            return f"{self.dataset_type.value}:{_APPEND}:{years}"
        return f"{self.dataset_type.value}:{self.kind}"

    def conflicts_with(self, other: IngestionScope) -> bool:
        if self.dataset_type is not other.dataset_type:
            return False
        if _TABLE in (self.kind, other.kind):
            return True
        if self.kind == _YEAR and other.kind == _YEAR:
            return self.fiscal_year == other.fiscal_year
        if self.kind == _YEAR and other.kind == _APPEND:
            return self.fiscal_year in other.fiscal_years
        if self.kind == _APPEND and other.kind == _YEAR:
            return other.fiscal_year in self.fiscal_years
        return False


def parse_scope_key(key: str) -> IngestionScope:
    dataset_raw, _, part = key.partition(":")
    dataset_type = DatasetType(dataset_raw)
    if part == _TABLE:
        return IngestionScope(dataset_type, _TABLE)
    if part == _APPEND or part.startswith(f"{_APPEND}:"):
        years = part[len(_APPEND) + 1 :]
        fiscal_years = frozenset(int(year) for year in years.split(",") if year)
        return IngestionScope(dataset_type, _APPEND, fiscal_years=fiscal_years)
    return IngestionScope(dataset_type, _YEAR, int(part))


class ScopeLockRegistry:
    """
    Tracks scopes held by runs in this process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._held: dict[str, int] = {}

    @contextmanager
    def hold(self, scope: IngestionScope) -> Iterator[None]:
        with self._lock:
            for held_key in self._held:
                if scope.conflicts_with(parse_scope_key(held_key)):
                    logger.info("Rejecting run for scope %s; %s is in progress", scope.key, held_key)
                    raise IngestionConflictError(
                        f"Another ingestion run ({held_key}) is in progress for "
                        f"{scope.dataset_type.value}. Retry once it finishes."
                    )
            self._held[scope.key] = self._held.get(scope.key, 0) + 1

        try:
            yield
        finally:
            with self._lock:
                remaining = self._held.get(scope.key, 0) - 1
                if remaining > 0:
                    self._held[scope.key] = remaining
                else:
                    self._held.pop(scope.key, None)

    def held_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._held)
