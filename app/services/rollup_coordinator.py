"""
app/services/rollup_coordinator.py

Keeps the per-year rollup tables in step with the raw dataset tables.

Primary recomputes are fatal: a stale transaction or budget-vs-actuals
rollup directly produces wrong public totals. Purges of vanished years and
the year-totals refresh pass are best effort and only logged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from app.domain.ingestion import DatasetType, RunDeadline, UploadMode, UploadModeKind
from app.services.ingestion_errors import RollupRecomputeError

logger = logging.getLogger(__name__)

ROLLUP_TABLES_BY_DATASET: dict[DatasetType, tuple[str, ...]] = {
    DatasetType.TRANSACTIONS: (
        "transaction_year_department",
        "transaction_year_vendor",
        "transaction_year_totals",
    ),
    DatasetType.BUDGETS: ("budget_actuals_year_department", "budget_actuals_year_totals"),
    DatasetType.ACTUALS: ("budget_actuals_year_department", "budget_actuals_year_totals"),
    DatasetType.REVENUES: ("revenue_year_totals",),
}

_PAIRED_DATASET: dict[DatasetType, DatasetType] = {
    DatasetType.BUDGETS: DatasetType.ACTUALS,
    DatasetType.ACTUALS: DatasetType.BUDGETS,
}


class RollupStore(Protocol):
    def recompute_transaction_summaries(self, fiscal_year: int) -> None:
        ...

    def recompute_budget_actuals_summaries(self, fiscal_year: int) -> None:
        ...

    def purge(self, table_name: str, fiscal_year: int | None) -> int:
        ...

    def refresh_year_totals(self, dataset_type: DatasetType, fiscal_year: int) -> None:
        ...


class YearSource(Protocol):
    def list_fiscal_years(self, dataset_type: DatasetType) -> list[int]:
        ...


class RollupCoordinator:
    def __init__(self, store: RollupStore, year_source: YearSource) -> None:
        self._store = store
        self._year_source = year_source

    def recompute(
        self,
        dataset_type: DatasetType,
        fiscal_years: Iterable[int],
        *,
        mode: UploadMode | None = None,
        deadline: RunDeadline | None = None,
    ) -> tuple[int, ...]:
        """
        Rebuild the primary rollups for ``fiscal_years``, newest year first.

        Returns the years that were recomputed. Raises RollupRecomputeError on
        the first failing year.
        """

        years = set(fiscal_years)
        if mode is not None and mode.kind is UploadModeKind.REPLACE_TABLE:
            years |= self._paired_years(dataset_type)

        ordered = tuple(sorted(years, reverse=True))
        if dataset_type is DatasetType.REVENUES:
            return ordered

        for fiscal_year in ordered:
            if deadline is not None and deadline.expired():
                raise RollupRecomputeError(
                    "Data was written, but the run budget ran out before rollups for "
                    f"fiscal year {fiscal_year} were rebuilt. Summary views are stale.",
                    fiscal_year=fiscal_year,
                )
            try:
                if dataset_type is DatasetType.TRANSACTIONS:
                    self._store.recompute_transaction_summaries(fiscal_year)
                else:
                    self._store.recompute_budget_actuals_summaries(fiscal_year)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Rollup recompute failed for %s fiscal year %d: %s",
                    dataset_type.value,
                    fiscal_year,
                    exc,
                )
                raise RollupRecomputeError(
                    f"Data was written, but rollups for fiscal year {fiscal_year} "
                    "could not be rebuilt. Summary views are stale.",
                    fiscal_year=fiscal_year,
                ) from exc
            logger.info("Recomputed %s rollups for fiscal year %d", dataset_type.value, fiscal_year)

        return ordered

    def purge_rollups(self, dataset_type: DatasetType, fiscal_year: int | None) -> None:
        """
        Drop rollup rows for one year, or every year when ``fiscal_year`` is None.
        """

        for table_name in ROLLUP_TABLES_BY_DATASET[dataset_type]:
            try:
                removed = self._store.purge(table_name, fiscal_year)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Could not purge %s for fiscal year %s: %s",
                    table_name,
                    "all" if fiscal_year is None else fiscal_year,
                    exc,
                )
                continue
            logger.info("Purged %d rows from %s", removed, table_name)

    def refresh(self, dataset_type: DatasetType, fiscal_years: Iterable[int]) -> None:
        for fiscal_year in sorted(set(fiscal_years), reverse=True):
            try:
                self._store.refresh_year_totals(dataset_type, fiscal_year)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Year totals refresh failed for %s fiscal year %d: %s",
                    dataset_type.value,
                    fiscal_year,
                    exc,
                )

    def _paired_years(self, dataset_type: DatasetType) -> set[int]:
        paired = _PAIRED_DATASET.get(dataset_type)
        if paired is None:
            return set()

        years: set[int] = set()
        for source in (dataset_type, paired):
            try:
                years.update(self._year_source.list_fiscal_years(source))
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not list fiscal years for %s: %s", source.value, exc)
        return years
