"""
tests/test_chunked_writer.py

Chunk sizing and partial-failure accounting for ChunkedWriter.
"""

from __future__ import annotations

import pytest

from app.domain.ingestion import DatasetType, RunDeadline
from app.services.chunked_writer import ChunkedWriter
from tests.conftest import FakeDatasetStore


def _records(count: int, fiscal_year: int = 2024) -> list[dict[str, int]]:
    return [{"fiscal_year": fiscal_year, "amount": index} for index in range(count)]


class TestChunkedWriter:
    def test_third_chunk_failure_reports_exact_progress(self) -> None:
        store = FakeDatasetStore()
        store.fail_on_chunk = 3
        writer = ChunkedWriter(store, chunk_size=5000, max_records=250_000)

        result = writer.write(DatasetType.BUDGETS, _records(12_001))

        assert result.inserted_count == 10_000
        assert result.attempted_count == 12_001
        assert result.failed_at_chunk_index == 10_000
        assert not result.succeeded
        assert len(store.rows[DatasetType.BUDGETS]) == 10_000
        assert result.to_details() == {
            "attemptedRows": 12_001,
            "successfullyInsertedRows": 10_000,
            "failedAtIndex": 10_000,
        }

    def test_stops_at_first_failure(self) -> None:
        store = FakeDatasetStore()
        store.fail_on_chunk = 1
        writer = ChunkedWriter(store, chunk_size=10)

        result = writer.write(DatasetType.BUDGETS, _records(35))

        assert result.inserted_count == 0
        assert result.failed_at_chunk_index == 0
        assert store.calls == [("insert", 10)]

    def test_success_covers_every_record(self) -> None:
        store = FakeDatasetStore()
        writer = ChunkedWriter(store, chunk_size=4)

        result = writer.write(DatasetType.BUDGETS, _records(10) + _records(1, fiscal_year=2025))

        assert result.succeeded
        assert result.inserted_count == 11
        assert [size for _, size in store.calls] == [4, 4, 3]
        assert result.affected_fiscal_years == frozenset({2024, 2025})

    def test_rejects_batches_over_the_run_maximum(self) -> None:
        writer = ChunkedWriter(FakeDatasetStore(), chunk_size=2, max_records=3)

        with pytest.raises(ValueError):
            writer.write(DatasetType.BUDGETS, _records(4))

    def test_expired_deadline_stops_before_next_chunk(self) -> None:
        ticks = iter([0.0, 1.0, 11.0])
        deadline = RunDeadline(10.0, clock=lambda: next(ticks))
        store = FakeDatasetStore()
        writer = ChunkedWriter(store, chunk_size=2)

        result = writer.write(DatasetType.BUDGETS, _records(5), deadline=deadline)

        assert result.timed_out
        assert result.inserted_count == 2
        assert result.failed_at_chunk_index == 2
        assert store.calls == [("insert", 2)]

    def test_chunk_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ChunkedWriter(FakeDatasetStore(), chunk_size=0)
