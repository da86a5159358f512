"""
tests/test_rollup_coordinator.py

Recompute ordering, fatal / non-fatal policy and replace-table year union.
"""

from __future__ import annotations

import pytest

from app.domain.ingestion import DatasetType, UploadMode
from app.services.ingestion_errors import RollupRecomputeError
from app.services.rollup_coordinator import ROLLUP_TABLES_BY_DATASET, RollupCoordinator
from tests.conftest import FakeDatasetStore, FakeRollupStore


@pytest.fixture()
def store() -> FakeRollupStore:
    return FakeRollupStore()


@pytest.fixture()
def years() -> FakeDatasetStore:
    return FakeDatasetStore()


class TestRecompute:
    def test_transactions_recompute_newest_first(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        coordinator = RollupCoordinator(store, years)

        recomputed = coordinator.recompute(DatasetType.TRANSACTIONS, {2022, 2024, 2023})

        assert recomputed == (2024, 2023, 2022)
        assert store.calls == [
            ("recompute", ("transactions", 2024)),
            ("recompute", ("transactions", 2023)),
            ("recompute", ("transactions", 2022)),
        ]

    def test_single_year_failure_is_fatal(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        store.fail_recompute_year = 2023
        coordinator = RollupCoordinator(store, years)

        with pytest.raises(RollupRecomputeError) as exc_info:
            coordinator.recompute(DatasetType.BUDGETS, {2022, 2023, 2024})

        assert exc_info.value.fiscal_year == 2023
        assert store.recomputed_years() == [2024, 2023]

    def test_replace_table_recomputes_union_of_budget_and_actual_years(
        self, store: FakeRollupStore, years: FakeDatasetStore
    ) -> None:
        years.rows[DatasetType.BUDGETS] = [{"fiscal_year": 2024}]
        years.rows[DatasetType.ACTUALS] = [{"fiscal_year": 2021}, {"fiscal_year": 2023}]
        coordinator = RollupCoordinator(store, years)

        recomputed = coordinator.recompute(DatasetType.BUDGETS, {2024}, mode=UploadMode.replace_table())

        assert recomputed == (2024, 2023, 2021)

    def test_year_lookup_failure_is_not_fatal(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        years.fail_year_listing = True
        coordinator = RollupCoordinator(store, years)

        recomputed = coordinator.recompute(DatasetType.ACTUALS, {2024}, mode=UploadMode.replace_table())

        assert recomputed == (2024,)

    def test_append_does_not_look_up_other_table(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        years.rows[DatasetType.ACTUALS] = [{"fiscal_year": 2019}]
        coordinator = RollupCoordinator(store, years)

        assert coordinator.recompute(DatasetType.BUDGETS, {2024}, mode=UploadMode.append()) == (2024,)

    def test_revenues_have_no_primary_rollup(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        coordinator = RollupCoordinator(store, years)

        assert coordinator.recompute(DatasetType.REVENUES, {2024}) == (2024,)
        assert store.calls == []


class TestBestEffortSteps:
    def test_purge_failures_are_swallowed(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        store.fail_purge = True
        coordinator = RollupCoordinator(store, years)

        coordinator.purge_rollups(DatasetType.TRANSACTIONS, 2024)

        purged = [args for name, args in store.calls if name == "purge"]
        assert purged == [(table, 2024) for table in ROLLUP_TABLES_BY_DATASET[DatasetType.TRANSACTIONS]]

    def test_refresh_failures_are_swallowed(self, store: FakeRollupStore, years: FakeDatasetStore) -> None:
        store.fail_refresh = True
        coordinator = RollupCoordinator(store, years)

        coordinator.refresh(DatasetType.REVENUES, [2023, 2024])

        assert [args for name, args in store.calls if name == "refresh"] == [("revenues", 2024), ("revenues", 2023)]
