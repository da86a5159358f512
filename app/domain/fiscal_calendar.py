"""
app/domain/fiscal_calendar.py

Civil-calendar fiscal year arithmetic.

Everything here works on ``datetime.date`` values: no timezones, no
instants, so a date near midnight can never drift into a neighbouring day
and change its fiscal year.

A fiscal year is named by the calendar year in which it ends. With a
July 1 start, 2024-07-01 .. 2025-06-30 is FY 2025; with a January 1 start
the fiscal year is the calendar year.
"""

from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Any

from app.domain.ingestion import FiscalConfig

ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
PERIOD_PATTERN = re.compile(r"^(\d{4})[-/](\d{1,2})$")

MIN_FISCAL_YEAR = 2000
MAX_FISCAL_YEAR = 2100


def parse_iso_date(value: Any) -> date | None:
    """
    Parse a strict ``YYYY-MM-DD`` calendar date; anything else gives None.

    ``date`` instances pass through unchanged.
    """

    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = ISO_DATE_PATTERN.match(value.strip())
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_period(value: Any) -> tuple[int, int] | None:
    """
    Parse ``YYYY-MM``, ``YYYY-M`` or ``YYYY/MM`` into (year, month).
    """

    if not isinstance(value, str):
        return None
    match = PERIOD_PATTERN.match(value.strip())
    if match is None:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return year, month


def canonical_period(value: Any) -> str | None:
    parsed = parse_period(value)
    if parsed is None:
        return None
    year, month = parsed
    return f"{year:04d}-{month:02d}"


def fiscal_year_for_date(day: date, config: FiscalConfig) -> int:
    on_or_after_start = (day.month, day.day) >= (config.start_month, config.start_day)
    start_year = day.year if on_or_after_start else day.year - 1
    if config.is_calendar_year:
        return start_year
    return start_year + 1


def fiscal_period_for_date(day: date, config: FiscalConfig) -> int:
    """
    1-based month of the fiscal year containing ``day``.

    With a mid-month start day, days before the start day still belong to
    the previous fiscal month.
    """

    effective_month = day.month
    if config.start_day > 1 and day.day < config.start_day:
        effective_month = 12 if day.month == 1 else day.month - 1
    return (effective_month - config.start_month) % 12 + 1


def date_from_period(value: Any, start_day: int) -> date | None:
    """
    Anchor a reporting month to the fiscal start day, clamped to month end.
    """

    parsed = parse_period(value)
    if parsed is None:
        return None
    year, month = parsed
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(1, start_day), last_day))
