"""
app/validators/dataset_validator.py

Header and row validation for financial dataset uploads.

Header checks are fatal for the batch: a duplicate column or a missing
required column returns immediately with no records. Row checks never
stop the batch; every defect becomes a RowIssue and validation moves on,
so a submitter can fix a whole file in one pass.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.dataset_schemas import INTEGER_COLUMNS, ColumnSchema, get_column_schema
from app.domain.fiscal_calendar import canonical_period, parse_iso_date
from app.domain.ingestion import (
    DatasetType,
    HeaderIssue,
    ParsedRecord,
    RowIssue,
    ValidationIssue,
    ValidationReport,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUES = frozenset({"", "na", "n/a", "none"})

# Plain digits, or digits grouped in threes by commas; optional sign and fraction.
_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+)?(?:\.\d+)?$")


class DatasetValidator:
    """
    Validates a header row and its data rows against a dataset's ColumnSchema.
    """

    def validate(
        self,
        *,
        dataset_type: DatasetType,
        header_row: Sequence[str],
        data_rows: Sequence[Sequence[str | None]],
    ) -> ValidationReport:
        schema = get_column_schema(dataset_type)
        header = [self._clean_header(name) for name in header_row]

        header_issues = self.validate_header(schema=schema, header=header)
        if header_issues:
            return ValidationReport(records=[], years_present=frozenset(), issues=list(header_issues))

        ignored = [name for name in header if name and name not in schema.columns]
        if ignored:
            logger.info(
                "Ignoring columns outside the %s schema: %s",
                dataset_type.value,
                ", ".join(ignored),
            )

        records: list[ParsedRecord] = []
        issues: list[ValidationIssue] = []
        years: set[int] = set()

        for row_number, cells in enumerate(data_rows, start=2):
            record = self.validate_row(
                schema=schema,
                header=header,
                cells=cells,
                row_number=row_number,
                issues=issues,
            )
            if record is None:
                continue
            fiscal_year = record.values.get("fiscal_year")
            if isinstance(fiscal_year, int):
                years.add(fiscal_year)
            records.append(record)

        return ValidationReport(records=records, years_present=frozenset(years), issues=issues)

    def validate_header(self, *, schema: ColumnSchema, header: Sequence[str]) -> list[HeaderIssue]:
        if not any(header):
            return [HeaderIssue(message="CSV header row is missing.")]

        issues: list[HeaderIssue] = []
        counts = Counter(name for name in header if name)
        for name, count in counts.items():
            if count > 1:
                issues.append(
                    HeaderIssue(
                        field=name,
                        message=f"Column '{name}' appears {count} times; column names must be unique.",
                    )
                )

        for name in schema.required:
            if name not in counts:
                issues.append(
                    HeaderIssue(
                        field=name,
                        message=f"Missing required column '{name}' for {schema.dataset_type.value}.",
                    )
                )
        return issues

    def validate_row(
        self,
        *,
        schema: ColumnSchema,
        header: Sequence[str],
        cells: Sequence[str | None],
        row_number: int,
        issues: list[ValidationIssue],
    ) -> ParsedRecord | None:
        if all(self._is_blank(value) for value in cells):
            issues.append(RowIssue(row=row_number, message="Completely empty rows are not allowed."))
            return None

        if len(cells) > len(header) and any(not self._is_blank(value) for value in cells[len(header):]):
            issues.append(
                RowIssue(
                    row=row_number,
                    message=f"Row has {len(cells)} fields but the header has {len(header)} columns.",
                )
            )

        values: dict[str, Any] = {}
        unparsed: set[str] = set()
        for index, name in enumerate(header):
            if name not in schema.columns:
                continue
            raw = cells[index] if index < len(cells) else None
            if self._is_blank(raw):
                values[name] = None
                continue
            text = str(raw).strip()
            if name in INTEGER_COLUMNS:
                # Range and type are checked on the resolved value during normalization.
                values[name] = _whole_number_or_text(text)
            elif schema.is_numeric(name):
                values[name] = self._parse_number(
                    value=text,
                    column=name,
                    row_number=row_number,
                    issues=issues,
                )
                if values[name] is None:
                    unparsed.add(name)
            else:
                values[name] = text

        for name in schema.required:
            if values.get(name) is None and name not in unparsed:
                issues.append(
                    RowIssue(
                        row=row_number,
                        field=name,
                        message="Required value is missing.",
                    )
                )

        self._check_date(schema=schema, values=values, row_number=row_number, issues=issues)
        self._check_period(schema=schema, values=values, row_number=row_number, issues=issues)
        self._check_placeholders(schema=schema, values=values, row_number=row_number, issues=issues)
        self._check_amount_sign(schema=schema, values=values, row_number=row_number, issues=issues)

        return ParsedRecord(row_number=row_number, values=values)

    def _parse_number(
        self,
        *,
        value: str,
        column: str,
        row_number: int,
        issues: list[ValidationIssue],
    ) -> Decimal | None:
        number = parse_locale_number(value)
        if number is None:
            issues.append(
                RowIssue(
                    row=row_number,
                    field=column,
                    message=f"'{column}' must be a number.",
                    value=value,
                )
            )
            return None
        return number

    def _check_date(
        self,
        *,
        schema: ColumnSchema,
        values: dict[str, Any],
        row_number: int,
        issues: list[ValidationIssue],
    ) -> None:
        column = schema.date_column
        if column is None or values.get(column) is None:
            return
        raw = values[column]
        parsed = parse_iso_date(raw)
        if parsed is None:
            issues.append(
                RowIssue(
                    row=row_number,
                    field=column,
                    message="Date must be a valid calendar date in YYYY-MM-DD format.",
                    value=str(raw),
                )
            )
            return
        values[column] = parsed

    def _check_period(
        self,
        *,
        schema: ColumnSchema,
        values: dict[str, Any],
        row_number: int,
        issues: list[ValidationIssue],
    ) -> None:
        column = schema.period_column
        if column is None or values.get(column) is None:
            return
        raw = values[column]
        period = canonical_period(raw)
        if period is None:
            issues.append(
                RowIssue(
                    row=row_number,
                    field=column,
                    message="Period must be YYYY-MM with a month between 01 and 12.",
                    value=str(raw),
                )
            )
            return
        values[column] = period

    def _check_placeholders(
        self,
        *,
        schema: ColumnSchema,
        values: dict[str, Any],
        row_number: int,
        issues: list[ValidationIssue],
    ) -> None:
        for column in schema.placeholder_columns:
            value = values.get(column)
            if value is not None and str(value).strip().lower() in PLACEHOLDER_VALUES:
                issues.append(
                    RowIssue(
                        row=row_number,
                        field=column,
                        message=f"'{column}' must be a real name, not a placeholder.",
                        value=str(value),
                    )
                )

    def _check_amount_sign(
        self,
        *,
        schema: ColumnSchema,
        values: dict[str, Any],
        row_number: int,
        issues: list[ValidationIssue],
    ) -> None:
        if schema.allow_negative_amounts:
            return
        amount = values.get("amount")
        if isinstance(amount, Decimal) and amount < 0:
            issues.append(
                RowIssue(
                    row=row_number,
                    field="amount",
                    message=f"Negative amounts are not allowed in {schema.dataset_type.value}.",
                    value=str(amount),
                )
            )

    @staticmethod
    def _clean_header(name: str | None) -> str:
        if name is None:
            return ""
        return str(name).replace("\ufeff", "").strip()

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or str(value).strip() == ""


def parse_locale_number(value: str) -> Decimal | None:
    """
    Parse a number that may use commas as thousands separators.

    Returns None for anything that is not a finite decimal number.
    """

    text = value.strip()
    if not text or not _NUMBER_PATTERN.match(text) or not any(char.isdigit() for char in text):
        return None
    try:
        number = Decimal(text.replace(",", ""))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _whole_number_or_text(value: str) -> int | str:
    number = parse_locale_number(value)
    if number is None or number != number.to_integral_value():
        return value
    return int(number)
