"""
tests/test_dataset_validator.py

Header and row validation per dataset type, plus value sanitisation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from app.domain.dataset_schemas import DATASET_SCHEMAS, get_column_schema
from app.domain.ingestion import DatasetType, HeaderIssue, RowIssue
from app.validators.dataset_validator import DatasetValidator, parse_locale_number
from app.validators.record_sanitizer import sanitize_record, sanitize_value

TXN_HEADER = [
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
]


def _txn_row(**overrides: str) -> list[str]:
    values = {
        "date": "2024-07-15",
        "fund_code": "100",
        "fund_name": "General Fund",
        "department_code": "D10",
        "department_name": "Parks",
        "account_code": "5100",
        "account_name": "Supplies",
        "vendor": "Acme Landscaping",
        "description": "Mulch",
        "amount": "1,250.50",
    }
    values.update(overrides)
    return [values[column] for column in TXN_HEADER]


@pytest.fixture()
def validator() -> DatasetValidator:
    return DatasetValidator()


# ---------------------------------------------------------------------------
# Schema registry
# ---------------------------------------------------------------------------


class TestColumnSchemas:
    def test_every_dataset_has_a_schema(self) -> None:
        assert set(DATASET_SCHEMAS) == set(DatasetType)

    def test_transactions_require_vendor_but_not_fiscal_year(self) -> None:
        schema = get_column_schema(DatasetType.TRANSACTIONS)
        assert "vendor" in schema.required
        assert "fiscal_year" not in schema.required
        assert "fiscal_year" in schema.columns

    def test_budgets_require_fiscal_year(self) -> None:
        assert "fiscal_year" in get_column_schema(DatasetType.BUDGETS).required


# ---------------------------------------------------------------------------
# Header checks
# ---------------------------------------------------------------------------


class TestHeaderValidation:
    def test_missing_vendor_column_is_one_header_issue_and_no_records(self, validator: DatasetValidator) -> None:
        header = [column for column in TXN_HEADER if column != "vendor"]
        rows = [[value for column, value in zip(TXN_HEADER, _txn_row()) if column != "vendor"]] * 50

        report = validator.validate(dataset_type=DatasetType.TRANSACTIONS, header_row=header, data_rows=rows)

        assert report.records == []
        assert len(report.issues) == 1
        assert isinstance(report.issues[0], HeaderIssue)
        assert report.issues[0].field == "vendor"
        assert report.issues[0].row is None

    def test_duplicate_columns_are_reported(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount", "amount"],
            data_rows=[["2024", "Parks", "1", "2"]],
        )

        assert report.has_header_issues
        assert [issue.field for issue in report.issues] == ["amount"]

    def test_byte_order_mark_on_first_column_is_ignored(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["\ufefffiscal_year", "department_name", "amount"],
            data_rows=[["2024", "Parks", "10"]],
        )

        assert report.is_valid
        assert report.records[0].values["fiscal_year"] == 2024

    def test_unknown_columns_are_ignored(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount", "notes"],
            data_rows=[["2024", "Parks", "10", "carry-over"]],
        )

        assert report.is_valid
        assert "notes" not in report.records[0].values


# ---------------------------------------------------------------------------
# Row checks
# ---------------------------------------------------------------------------


class TestRowValidation:
    def test_valid_transaction_row(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.TRANSACTIONS,
            header_row=TXN_HEADER,
            data_rows=[_txn_row()],
        )

        assert report.is_valid
        values = report.records[0].values
        assert values["amount"] == Decimal("1250.50")
        assert values["date"] == date(2024, 7, 15)
        assert report.records[0].row_number == 2

    def test_all_row_issues_are_collected(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.TRANSACTIONS,
            header_row=TXN_HEADER,
            data_rows=[
                _txn_row(amount="12abc"),
                _txn_row(date="2024-13-01"),
                _txn_row(vendor="N/A"),
                _txn_row(department_name="none"),
                _txn_row(description=""),
            ],
        )

        rows_and_fields = [(issue.row, issue.field) for issue in report.issues]
        assert rows_and_fields == [
            (2, "amount"),
            (3, "date"),
            (4, "vendor"),
            (5, "department_name"),
            (6, "description"),
        ]
        assert all(isinstance(issue, RowIssue) for issue in report.issues)
        assert len(report.records) == 5

    def test_unparseable_number_leaves_value_null(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.TRANSACTIONS,
            header_row=TXN_HEADER,
            data_rows=[_txn_row(amount="1.2.3")],
        )

        assert report.records[0].values["amount"] is None
        assert len(report.issues) == 1

    def test_negative_amount_rejected_for_budgets_only(self, validator: DatasetValidator) -> None:
        budgets = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount"],
            data_rows=[["2024", "Parks", "-100"]],
        )
        transactions = validator.validate(
            dataset_type=DatasetType.TRANSACTIONS,
            header_row=TXN_HEADER,
            data_rows=[_txn_row(amount="-100")],
        )

        assert [issue.field for issue in budgets.issues] == ["amount"]
        assert transactions.is_valid

    def test_fiscal_fields_are_left_for_normalization(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount"],
            data_rows=[["1999", "Parks", "1"], ["2024.5", "Parks", "1"], ["2,024", "Parks", "1"]],
        )

        assert report.issues == []
        assert [record.values["fiscal_year"] for record in report.records] == [1999, "2024.5", 2024]
        assert report.years_present == frozenset({1999, 2024})

    def test_supplied_fiscal_year_does_not_block_a_dated_transaction(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.TRANSACTIONS,
            header_row=[*TXN_HEADER, "fiscal_year", "fiscal_period"],
            data_rows=[[*_txn_row(), "FY24", "13"]],
        )

        assert report.is_valid

    def test_completely_empty_row_is_an_issue(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount"],
            data_rows=[["", "", ""]],
        )

        assert len(report.issues) == 1
        assert report.records == []

    def test_extra_fields_are_an_issue(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.BUDGETS,
            header_row=["fiscal_year", "department_name", "amount"],
            data_rows=[["2024", "Parks", "1", "surprise"]],
        )

        assert len(report.issues) == 1
        assert report.issues[0].row == 2

    def test_period_is_canonicalised(self, validator: DatasetValidator) -> None:
        report = validator.validate(
            dataset_type=DatasetType.ACTUALS,
            header_row=["period", "department_name", "amount"],
            data_rows=[["2024/7", "Parks", "10"], ["2024-13", "Parks", "10"]],
        )

        assert report.records[0].values["period"] == "2024-07"
        assert [(issue.row, issue.field) for issue in report.issues] == [(3, "period")]


class TestParseLocaleNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1,234", Decimal("1234")),
            ("1,234,567.89", Decimal("1234567.89")),
            ("-5.5", Decimal("-5.5")),
            (".75", Decimal(".75")),
            ("42", Decimal("42")),
        ],
    )
    def test_accepts(self, raw: str, expected: Decimal) -> None:
        assert parse_locale_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", "+", ".", "1,23", "12abc", "1e5", "NaN", "1.2.3"])
    def test_rejects(self, raw: str) -> None:
        assert parse_locale_number(raw) is None


class TestSanitizer:
    def test_script_blocks_and_handlers_are_removed(self) -> None:
        assert sanitize_value("<script>alert(1)</script>Parks") == "Parks"
        assert sanitize_value("javascript:alert") == "alert"
        assert sanitize_value('x onclick="evil"') == 'x "evil"'

    def test_html_metacharacters_are_escaped(self) -> None:
        assert sanitize_value("Fish & Game <Dept>") == "Fish &amp; Game &lt;Dept&gt;"

    def test_non_strings_pass_through(self) -> None:
        record = {"amount": Decimal("1"), "date": date(2024, 1, 1), "vendor": "A&B"}
        assert sanitize_record(record) == {"amount": Decimal("1"), "date": date(2024, 1, 1), "vendor": "A&amp;B"}
