"""Flattened period summary for spreadsheet export."""

from __future__ import annotations

import csv
import io
from typing import Any

from media_rollup.models.rollup import CombinedRollup, RollupState
from media_rollup.services.periods import sort_periods

SUMMARY_COLUMNS = [
    "Month",
    "Media Spend",
    "Impressions",
    "Clicks",
    "CTR",
    "CPM",
    "CPC",
    "CP IV",
    "Cp NVWR",
]


def summary_rows(state: RollupState | CombinedRollup) -> list[dict[str, Any]]:
    """One row per period in chronological order, then a ``YTD {year}`` row."""
    rows: list[dict[str, Any]] = []
    for key in sort_periods(state.months):
        period = state.months[key]
        rows.append({
            "Month": key,
            "Media Spend": period.total_media_spend,
            "Impressions": period.total_impressions,
            "Clicks": period.total_clicks,
            "CTR": period.avg_ctr,
            "CPM": period.avg_cpm,
            "CPC": period.avg_cpc,
            "CP IV": period.avg_cp_iv,
            "Cp NVWR": period.avg_cp_nvwr,
        })

    totals = state.year_to_date_totals
    averages = state.year_to_date_averages
    rows.append({
        "Month": f"YTD {totals.year}",
        "Media Spend": totals.media_spend,
        "Impressions": totals.impressions,
        "Clicks": totals.clicks,
        "CTR": averages.ctr,
        "CPM": averages.cpm,
        "CPC": averages.cpc,
        "CP IV": averages.cp_iv,
        "Cp NVWR": averages.cp_nvwr,
    })
    return rows


def render_summary_csv(rows: list[dict[str, Any]]) -> str:
    """Render summary rows as CSV text."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=SUMMARY_COLUMNS, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()
