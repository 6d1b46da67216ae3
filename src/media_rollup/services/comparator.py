"""Year-to-date rollup and month-over-month comparison."""

from __future__ import annotations

from datetime import datetime, timezone

from media_rollup.models.rollup import (
    CombinedRollup,
    PeriodAggregate,
    PeriodComparison,
    RollupState,
    YearToDateAverages,
    YearToDateTotals,
)
from media_rollup.services.merger import merge_period
from media_rollup.services.periods import parse_period, sort_periods


def percentage_change(previous: float, latest: float) -> float:
    """Percent change from previous to latest.

    A previous value of 0 gives 100 when latest is positive, else 0.
    """
    if previous == 0:
        return 100.0 if latest > 0 else 0.0
    return (latest - previous) / previous * 100


def compute_year_to_date(
    months: dict[str, PeriodAggregate],
    year: int,
) -> tuple[YearToDateTotals, YearToDateAverages]:
    """Sum every period of ``year`` and derive weighted averages from the sums."""
    combined = PeriodAggregate()
    for key in sort_periods(months):
        if parse_period(key)[1] != year:
            continue
        combined = merge_period(combined, months[key])

    totals = YearToDateTotals(
        year=year,
        media_spend=combined.total_media_spend,
        impressions=combined.total_impressions,
        clicks=combined.total_clicks,
        iv=combined.total_iv,
        nvwr=combined.total_nvwr,
        rows=combined.row_count,
    )
    averages = YearToDateAverages(
        ctr=combined.avg_ctr,
        cpm=combined.avg_cpm,
        cpc=combined.avg_cpc,
        cp_iv=combined.avg_cp_iv,
        cp_nvwr=combined.avg_cp_nvwr,
    )
    return totals, averages


def compare_periods(months: dict[str, PeriodAggregate]) -> PeriodComparison | None:
    """Headline deltas between the two chronologically latest periods."""
    keys = sort_periods(months)
    if len(keys) < 2:
        return None

    previous_key, latest_key = keys[-2], keys[-1]
    previous, latest = months[previous_key], months[latest_key]
    return PeriodComparison(
        previous_period=previous_key,
        latest_period=latest_key,
        media_spend_change=percentage_change(previous.total_media_spend, latest.total_media_spend),
        impressions_change=percentage_change(previous.total_impressions, latest.total_impressions),
        clicks_change=percentage_change(previous.total_clicks, latest.total_clicks),
        ctr_change=percentage_change(previous.avg_ctr, latest.avg_ctr),
        cpm_change=percentage_change(previous.avg_cpm, latest.avg_cpm),
        cpc_change=percentage_change(previous.avg_cpc, latest.avg_cpc),
    )


def refresh_derived(
    state: RollupState | CombinedRollup,
    year: int | None = None,
    now: datetime | None = None,
) -> RollupState | CombinedRollup:
    """Rebuild YTD figures, the comparison and the timestamp from the periods."""
    now = now or datetime.now(timezone.utc)
    year = year or now.year
    totals, averages = compute_year_to_date(state.months, year)
    return state.model_copy(update={
        "year_to_date_totals": totals,
        "year_to_date_averages": averages,
        "monthly_comparison": compare_periods(state.months),
        "last_updated": now.isoformat(),
    })
