"""
app/domain/dataset_schemas.py

Column schemas per dataset type.

The registry is closed: every DatasetType maps to exactly one ColumnSchema,
checked once at import time. Column names must match the raw tables in
``db/models/financial_records.py``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.domain.ingestion import DatasetType

SCHEMA_VERSION = "2024.1"

INTEGER_COLUMNS: frozenset[str] = frozenset({"fiscal_year", "fiscal_period"})

_LINE_CODING = (
    "fund_code",
    "fund_name",
    "department_code",
    "account_code",
    "account_name",
)


@dataclass(frozen=True)
class ColumnSchema:
    dataset_type: DatasetType
    required: tuple[str, ...]
    numeric: frozenset[str]
    optional: tuple[str, ...] = ()
    date_column: str | None = None
    period_column: str | None = None
    allow_negative_amounts: bool = True
    placeholder_columns: tuple[str, ...] = ()
    derives_fiscal_year: bool = True

    @property
    def columns(self) -> tuple[str, ...]:
        return self.required + self.optional

    def is_numeric(self, column: str) -> bool:
        return column in self.numeric


_SCHEMAS: dict[DatasetType, ColumnSchema] = {
    DatasetType.BUDGETS: ColumnSchema(
        dataset_type=DatasetType.BUDGETS,
        required=("fiscal_year", "department_name", "amount"),
        numeric=frozenset({"fiscal_year", "amount"}),
        optional=_LINE_CODING + ("category",),
        allow_negative_amounts=False,
        placeholder_columns=("department_name",),
        derives_fiscal_year=False,
    ),
    DatasetType.ACTUALS: ColumnSchema(
        dataset_type=DatasetType.ACTUALS,
        required=("department_name", "amount"),
        numeric=frozenset({"fiscal_year", "fiscal_period", "amount"}),
        optional=("fiscal_year", "fiscal_period", "period", "date") + _LINE_CODING + ("category",),
        date_column="date",
        period_column="period",
        allow_negative_amounts=False,
        placeholder_columns=("department_name",),
    ),
    DatasetType.TRANSACTIONS: ColumnSchema(
        dataset_type=DatasetType.TRANSACTIONS,
        required=(
            "date",
            "fund_code",
            "fund_name",
            "department_code",
            "department_name",
            "account_code",
            "account_name",
            "vendor",
            "description",
            "amount",
        ),
        numeric=frozenset({"fiscal_year", "fiscal_period", "amount"}),
        optional=("fiscal_year", "fiscal_period"),
        date_column="date",
        placeholder_columns=("department_name", "vendor"),
    ),
    DatasetType.REVENUES: ColumnSchema(
        dataset_type=DatasetType.REVENUES,
        required=("amount",),
        numeric=frozenset({"fiscal_year", "fiscal_period", "amount"}),
        optional=("fiscal_year", "fiscal_period", "period", "date", "department_name", "category")
        + _LINE_CODING,
        date_column="date",
        period_column="period",
        placeholder_columns=("department_name",),
    ),
}


def _check_registry(schemas: Mapping[DatasetType, ColumnSchema]) -> None:
    missing = [dataset.value for dataset in DatasetType if dataset not in schemas]
    if missing:
        raise RuntimeError(f"No column schema registered for: {', '.join(missing)}")

    for dataset_type, schema in schemas.items():
        if schema.dataset_type is not dataset_type:
            raise RuntimeError(f"Schema for {dataset_type.value} is registered under the wrong key.")
        if not schema.required:
            raise RuntimeError(f"Schema for {dataset_type.value} has no required columns.")
        columns = schema.columns
        if len(set(columns)) != len(columns):
            raise RuntimeError(f"Schema for {dataset_type.value} lists a column twice.")
        unknown_numeric = schema.numeric - set(columns)
        if unknown_numeric:
            raise RuntimeError(
                f"Schema for {dataset_type.value} marks unknown columns numeric: "
                f"{', '.join(sorted(unknown_numeric))}"
            )
        for column in (schema.date_column, schema.period_column, *schema.placeholder_columns):
            if column is not None and column not in columns:
                raise RuntimeError(f"Schema for {dataset_type.value} references unknown column {column!r}.")


_check_registry(_SCHEMAS)

DATASET_SCHEMAS: Mapping[DatasetType, ColumnSchema] = MappingProxyType(_SCHEMAS)


def get_column_schema(dataset_type: DatasetType) -> ColumnSchema:
    return DATASET_SCHEMAS[dataset_type]
