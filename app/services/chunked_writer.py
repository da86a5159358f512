"""
app/services/chunked_writer.py

Writes normalized records in fixed-size chunks.

Each chunk is its own unit of work. A failed chunk stops the write; chunks
already committed stay committed and the result reports exactly how far
the write got.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from app.domain.ingestion import DatasetType, RunDeadline, UploadResult
from app.services.fiscal_period_normalizer import fiscal_years_of
from db.repositories.errors import DatasetPersistenceError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5000
DEFAULT_MAX_RECORDS = 250_000


class ChunkSink(Protocol):
    def insert_chunk(self, dataset_type: DatasetType, rows: Sequence[Mapping[str, Any]]) -> int:
        """Persist and commit one chunk, returning the number of rows written."""


class ChunkedWriter:
    def __init__(
        self,
        sink: ChunkSink,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_records: int = DEFAULT_MAX_RECORDS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1.")
        self._sink = sink
        self._chunk_size = chunk_size
        self._max_records = max_records

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def write(
        self,
        dataset_type: DatasetType,
        records: Sequence[Mapping[str, Any]],
        *,
        deadline: RunDeadline | None = None,
    ) -> UploadResult:
        if len(records) > self._max_records:
            raise ValueError(
                f"{len(records)} records exceed the per-run maximum of {self._max_records}."
            )

        attempted = len(records)
        inserted = 0
        written_years: set[int] = set()

        for offset in range(0, attempted, self._chunk_size):
            chunk = records[offset : offset + self._chunk_size]

            if deadline is not None and deadline.expired():
                logger.error(
                    "Run budget of %.0fs exhausted before chunk at offset %d of %s; %d/%d rows written",
                    deadline.budget_seconds,
                    offset,
                    dataset_type.value,
                    inserted,
                    attempted,
                )
                return UploadResult(
                    inserted_count=inserted,
                    attempted_count=attempted,
                    failed_at_chunk_index=offset,
                    affected_fiscal_years=frozenset(written_years),
                    timed_out=True,
                )

            try:
                self._sink.insert_chunk(dataset_type, chunk)
            except DatasetPersistenceError as exc:
                logger.error(
                    "Chunk at offset %d of %s failed after %d/%d rows: %s",
                    offset,
                    dataset_type.value,
                    inserted,
                    attempted,
                    exc,
                )
                return UploadResult(
                    inserted_count=inserted,
                    attempted_count=attempted,
                    failed_at_chunk_index=offset,
                    affected_fiscal_years=frozenset(written_years),
                )

            inserted += len(chunk)
            written_years.update(fiscal_years_of(chunk))
            logger.info(
                "Wrote chunk at offset %d of %s (%d/%d rows)",
                offset,
                dataset_type.value,
                inserted,
                attempted,
            )

        return UploadResult(
            inserted_count=inserted,
            attempted_count=attempted,
            affected_fiscal_years=frozenset(written_years),
        )
