"""Week-of-year to reporting-period resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from media_rollup.services.discovery import SourceFile

MONTH_CODES = [
    "JAN", "FEB", "MAR", "APR", "MAY", "JUN",
    "JUL", "AUG", "SEP", "OCT", "NOV", "DEC",
]

# Weeks 53+ have no month; week 53 straddles the year boundary.
EXCLUDED_WEEK = 53

# 4-4-5 calendar: each quarter is two four-week months and one five-week month.
_WEEKS_PER_MONTH = [4, 4, 5, 4, 4, 5, 4, 4, 5, 4, 4, 5]


def _build_week_table() -> dict[int, str]:
    table: dict[int, str] = {}
    week = 1
    for month, span in zip(MONTH_CODES, _WEEKS_PER_MONTH):
        for _ in range(span):
            table[week] = month
            week += 1
    return table


WEEK_TO_MONTH: dict[int, str] = _build_week_table()


def period_key(month: str, year: int) -> str:
    """Canonical period key, e.g. ``MAR-2025``."""
    return f"{month.upper()}-{year}"


def parse_period(key: str) -> tuple[str, int]:
    """Split ``MAR-2025`` into ``("MAR", 2025)``.

    Raises:
        ValueError: If the key is not a valid ``MON-YYYY`` period.
    """
    month, sep, year = key.strip().upper().partition("-")
    if not sep or month not in MONTH_CODES or not year.isdigit() or len(year) != 4:
        raise ValueError(f"Invalid period key '{key}'. Expected MON-YYYY, e.g. MAR-2025")
    return month, int(year)


def period_sort_key(key: str) -> tuple[int, int]:
    """Chronological sort key for a period."""
    month, year = parse_period(key)
    return year, MONTH_CODES.index(month)


def sort_periods(keys) -> list[str]:
    """Sort period keys chronologically (JAN-2025 before FEB-2025 before JAN-2026)."""
    return sorted(keys, key=period_sort_key)


def _parse_week(value: str) -> int | None:
    try:
        number = float(value)
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def resolve_period(week: str | None, source: SourceFile) -> str | None:
    """Map a row's week to a ``MON-YYYY`` period, or None to drop the row.

    - no week value: dropped
    - week 53: dropped, never assigned to the filename's month
    - week in WEEK_TO_MONTH: that month, year taken from the filename
    - anything else: the filename's own period
    """
    if week is None or not str(week).strip():
        return None

    number = _parse_week(str(week).strip())
    if number == EXCLUDED_WEEK:
        return None

    month = WEEK_TO_MONTH.get(number) if number is not None else None
    if month is None:
        return source.period

    year = source.year
    if month == "DEC" and source.month == "JAN":
        year -= 1
    elif month == "JAN" and source.month == "DEC":
        year += 1
    return period_key(month, year)
