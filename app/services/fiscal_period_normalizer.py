"""
app/services/fiscal_period_normalizer.py

Resolves ``fiscal_year`` / ``fiscal_period`` on validated records.

Rules per dataset type:

    budgets       supplied fiscal_year is trusted; only numeric coercion
    transactions  always derived from ``date``, overriding supplied values
    actuals,      derived from ``date`` when present, otherwise from a
    revenues      ``YYYY-MM`` period anchored to the fiscal start day;
                  with neither, supplied fiscal_year/fiscal_period are kept
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.fiscal_calendar import (
    MAX_FISCAL_YEAR,
    MIN_FISCAL_YEAR,
    canonical_period,
    date_from_period,
    fiscal_period_for_date,
    fiscal_year_for_date,
    parse_iso_date,
)
from app.domain.ingestion import DatasetType, FiscalConfig, ParsedRecord, RowIssue


def normalize_record(
    record: Mapping[str, Any],
    dataset_type: DatasetType,
    config: FiscalConfig,
) -> dict[str, Any]:
    """
    Return a copy of ``record`` with fiscal_year (and fiscal_period) resolved.
    """

    normalized = dict(record)
    _coerce_int_field(normalized, "fiscal_year")

    if dataset_type is DatasetType.BUDGETS:
        return normalized

    if dataset_type is DatasetType.TRANSACTIONS:
        day = parse_iso_date(normalized.get("date"))
        if day is not None:
            normalized["date"] = day
            normalized["fiscal_year"] = fiscal_year_for_date(day, config)
            normalized["fiscal_period"] = fiscal_period_for_date(day, config)
        return normalized

    period = canonical_period(normalized.get("period"))
    if period is not None:
        normalized["period"] = period

    raw_date = normalized.get("date")
    if raw_date not in (None, ""):
        anchor = parse_iso_date(raw_date)
        if anchor is not None:
            normalized["date"] = anchor
    else:
        anchor = date_from_period(period, config.start_day)

    if anchor is not None:
        normalized["fiscal_year"] = fiscal_year_for_date(anchor, config)
        normalized["fiscal_period"] = fiscal_period_for_date(anchor, config)
        return normalized

    _coerce_int_field(normalized, "fiscal_period")
    return normalized


def normalize_records(
    records: Sequence[ParsedRecord],
    dataset_type: DatasetType,
    config: FiscalConfig,
) -> tuple[list[dict[str, Any]], list[RowIssue]]:
    """
    Normalize a validated batch.

    Rows whose fiscal year cannot be resolved, or resolves to something out
    of range, are reported, not dropped. Only the resolved values are
    checked, so a supplied fiscal_year that a date overrides never fails.
    """

    normalized: list[dict[str, Any]] = []
    issues: list[RowIssue] = []

    for record in records:
        values = normalize_record(record.values, dataset_type, config)
        issues.extend(_resolved_field_issues(record.row_number, values))
        normalized.append(values)

    return normalized, issues


def fiscal_years_of(records: Sequence[Mapping[str, Any]]) -> frozenset[int]:
    return frozenset(
        value for value in (record.get("fiscal_year") for record in records) if isinstance(value, int)
    )


def _coerce_int_field(record: dict[str, Any], name: str) -> None:
    value = record.get(name)
    if value is None or value == "" or isinstance(value, bool) or isinstance(value, int):
        return
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return
    if number.is_finite() and number == number.to_integral_value():
        record[name] = int(number)


def _resolved_field_issues(row_number: int, values: Mapping[str, Any]) -> list[RowIssue]:
    issues: list[RowIssue] = []

    fiscal_year = values.get("fiscal_year")
    if fiscal_year is None or fiscal_year == "":
        issues.append(
            RowIssue(
                row=row_number,
                field="fiscal_year",
                message="Could not resolve a fiscal year from date, period or fiscal_year.",
            )
        )
    elif not _is_whole_number(fiscal_year):
        issues.append(
            RowIssue(
                row=row_number,
                field="fiscal_year",
                message="fiscal_year must be a whole number.",
                value=str(fiscal_year),
            )
        )
    elif not MIN_FISCAL_YEAR <= fiscal_year <= MAX_FISCAL_YEAR:
        issues.append(
            RowIssue(
                row=row_number,
                field="fiscal_year",
                message=f"fiscal_year must be between {MIN_FISCAL_YEAR} and {MAX_FISCAL_YEAR}.",
                value=str(fiscal_year),
            )
        )

    fiscal_period = values.get("fiscal_period")
    if fiscal_period not in (None, "") and not (_is_whole_number(fiscal_period) and 1 <= fiscal_period <= 12):
        issues.append(
            RowIssue(
                row=row_number,
                field="fiscal_period",
                message="fiscal_period must be a whole number between 1 and 12.",
                value=str(fiscal_period),
            )
        )

    return issues


def _is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
