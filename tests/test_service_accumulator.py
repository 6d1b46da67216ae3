"""Tests for services/accumulator.py — per-file weighted accumulation."""
import pytest

from media_rollup.models.rollup import PeriodAggregate
from media_rollup.models.rows import UNMAPPED_MODEL, parse_row
from media_rollup.services.accumulator import accumulate_rows, add_row

from conftest import export_row


def _rows(*raws):
    return [parse_row(r) for r in raws]


# ── add_row ──────────────────────────────────────────────────────────

def test_add_row_totals():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row()))
    assert agg.total_media_spend == 100
    assert agg.total_impressions == 1000
    assert agg.total_clicks == 50
    assert agg.total_iv == 20
    assert agg.total_nvwr == 4
    assert agg.row_count == 1


def test_add_row_weighted_pairs():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row()))
    assert agg.weighted_cpm == 10 * 1000
    assert agg.cpm_weight == 1000
    assert agg.weighted_cpc == 2 * 50
    assert agg.cpc_weight == 50
    assert agg.weighted_cp_iv == 5 * 20
    assert agg.cp_iv_weight == 20
    assert agg.weighted_cp_nvwr == 25 * 4
    assert agg.cp_nvwr_weight == 4


def test_add_row_zero_ratio_skips_weighting_only():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row(CPM="0")))
    assert agg.weighted_cpm == 0
    assert agg.cpm_weight == 0
    assert agg.total_impressions == 1000


def test_add_row_zero_weight_skips_weighting():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row(Clicks="0")))
    assert agg.weighted_cpc == 0
    assert agg.cpc_weight == 0
    assert agg.avg_cpc == 0


def test_add_row_model_totals():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row()))
    add_row(agg, parse_row(export_row(Model="Model B", Clicks="10")))
    add_row(agg, parse_row(export_row(Clicks="5")))
    assert set(agg.models) == {"Model A", "Model B"}
    assert agg.models["Model A"].clicks == 55
    assert agg.models["Model A"].rows == 2
    assert agg.models["Model B"].nvwr == 4


def test_add_row_unmapped_model():
    agg = PeriodAggregate()
    add_row(agg, parse_row(export_row(Model="")))
    assert agg.unmapped_rows == 1
    assert UNMAPPED_MODEL in agg.models


# ── accumulate_rows ──────────────────────────────────────────────────

def test_accumulate_splits_periods(mar_source):
    result = accumulate_rows(
        _rows(export_row(), export_row(**{"Week of Year": "8"})),
        mar_source,
    )
    assert set(result.periods) == {"MAR-2025", "FEB-2025"}
    assert result.records == 2
    assert result.filename == "FR-ALLMODELS-MAR-25.csv"


def test_accumulate_drops_week_53_and_blank(mar_source):
    result = accumulate_rows(
        _rows(
            export_row(),
            export_row(**{"Week of Year": "53"}),
            export_row(**{"Week of Year": ""}),
        ),
        mar_source,
    )
    assert result.records == 1
    assert result.dropped_rows == 2
    assert result.periods["MAR-2025"].total_impressions == 1000


def test_accumulate_only_dropped_rows(mar_source):
    result = accumulate_rows(_rows(export_row(**{"Week of Year": "53"})), mar_source)
    assert result.periods == {}
    assert result.dropped_rows == 1


def test_accumulate_models(mar_source):
    result = accumulate_rows(
        _rows(export_row(), export_row(Model="Model B", **{"Week of Year": "8"})),
        mar_source,
    )
    assert result.models == {"Model A", "Model B"}


def test_weighted_cpm_not_simple_mean(mar_source):
    result = accumulate_rows(
        _rows(
            export_row(Impressions="1000", CPM="10"),
            export_row(Impressions="3000", CPM="6.67"),
        ),
        mar_source,
    )
    period = result.periods["MAR-2025"]
    assert period.avg_cpm == pytest.approx(7.5025)
    assert period.avg_cpm != pytest.approx((10 + 6.67) / 2)


def test_same_ratio_with_unequal_weights_is_exact(mar_source):
    result = accumulate_rows(
        _rows(
            export_row(Impressions="10", CPM="4"),
            export_row(Impressions="9990", CPM="4"),
        ),
        mar_source,
    )
    assert result.periods["MAR-2025"].avg_cpm == 4.0
