"""Tests for services/periods.py — 4-4-5 week mapping and period keys."""
import pytest

from media_rollup.services.discovery import SourceFile
from media_rollup.services.periods import (
    WEEK_TO_MONTH,
    parse_period,
    period_key,
    resolve_period,
    sort_periods,
)


def _source(month: str, year: int = 2025) -> SourceFile:
    return SourceFile(
        entity="FR",
        filename=f"FR-ALLMODELS-{month}-{year % 100:02d}.csv",
        path="unused",
        month=month,
        year=year,
    )


# ── week table ───────────────────────────────────────────────────────

def test_week_table_covers_52_weeks():
    assert sorted(WEEK_TO_MONTH) == list(range(1, 53))


@pytest.mark.parametrize("week, month", [
    (1, "JAN"), (4, "JAN"), (5, "FEB"), (8, "FEB"),
    (9, "MAR"), (13, "MAR"), (14, "APR"), (26, "JUN"),
    (27, "JUL"), (39, "SEP"), (40, "OCT"), (48, "NOV"),
    (49, "DEC"), (52, "DEC"),
])
def test_week_boundaries(week, month):
    assert WEEK_TO_MONTH[week] == month


def test_five_week_months():
    counts = {}
    for month in WEEK_TO_MONTH.values():
        counts[month] = counts.get(month, 0) + 1
    assert [m for m, n in counts.items() if n == 5] == ["MAR", "JUN", "SEP", "DEC"]


# ── period keys ──────────────────────────────────────────────────────

def test_period_key():
    assert period_key("mar", 2025) == "MAR-2025"


def test_parse_period():
    assert parse_period("mar-2025") == ("MAR", 2025)


@pytest.mark.parametrize("key", ["MAR2025", "XYZ-2025", "MAR-25", "MAR-abcd", ""])
def test_parse_period_invalid(key):
    with pytest.raises(ValueError, match="Invalid period key"):
        parse_period(key)


def test_sort_periods_chronological():
    keys = ["JAN-2026", "DEC-2025", "FEB-2025", "APR-2025", "JAN-2025"]
    assert sort_periods(keys) == ["JAN-2025", "FEB-2025", "APR-2025", "DEC-2025", "JAN-2026"]


# ── resolve_period ───────────────────────────────────────────────────

def test_resolve_within_month():
    assert resolve_period("10", _source("MAR")) == "MAR-2025"


def test_resolve_week_from_neighbouring_month():
    """A MAR file can carry rows for the last week of FEB."""
    assert resolve_period("8", _source("MAR")) == "FEB-2025"


def test_resolve_float_week():
    assert resolve_period("10.0", _source("MAR")) == "MAR-2025"


def test_resolve_missing_week_dropped():
    assert resolve_period(None, _source("MAR")) is None
    assert resolve_period("  ", _source("MAR")) is None


def test_resolve_week_53_dropped():
    assert resolve_period("53", _source("DEC")) is None


@pytest.mark.parametrize("week", ["0", "54", "abc", "10.5"])
def test_resolve_unmapped_week_uses_filename(week):
    assert resolve_period(week, _source("MAR")) == "MAR-2025"


def test_resolve_dec_week_in_jan_file_is_previous_year():
    assert resolve_period("52", _source("JAN", 2026)) == "DEC-2025"


def test_resolve_jan_week_in_dec_file_is_next_year():
    assert resolve_period("1", _source("DEC", 2025)) == "JAN-2026"
