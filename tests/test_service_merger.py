"""Tests for services/merger.py — additive, pure merges."""
import pytest

from media_rollup.models.rollup import PeriodAggregate, RollupState
from media_rollup.models.rows import parse_row
from media_rollup.services.accumulator import accumulate_rows, add_row
from media_rollup.services.discovery import SourceFile
from media_rollup.services.merger import merge_accumulation, merge_models, merge_period

from conftest import export_row


def _period(*raws) -> PeriodAggregate:
    agg = PeriodAggregate()
    for raw in raws:
        add_row(agg, parse_row(raw))
    return agg


def _accumulation(filename, *raws):
    month = filename.split("-")[2]
    source = SourceFile(entity="FR", filename=filename, path="unused", month=month, year=2025)
    return accumulate_rows([parse_row(r) for r in raws], source)


# ── merge_period ─────────────────────────────────────────────────────

def test_merge_into_nothing_copies():
    incoming = _period(export_row())
    merged = merge_period(None, incoming)
    assert merged == incoming
    assert merged is not incoming
    merged.models["Model A"].clicks = 0
    assert incoming.models["Model A"].clicks == 50


def test_merge_adds_everything():
    a = _period(export_row(Impressions="1000", CPM="10", Clicks="50", **{"Media Spend": "100"}))
    b = _period(export_row(Impressions="3000", CPM="6.67", Clicks="150", **{"Media Spend": "200"}))
    merged = merge_period(a, b)
    assert merged.total_impressions == 4000
    assert merged.total_clicks == 200
    assert merged.total_media_spend == 300
    assert merged.row_count == 2
    assert merged.cpm_weight == 4000
    assert merged.avg_cpm == pytest.approx(7.5025)
    assert merged.models["Model A"].rows == 2


def test_merge_leaves_inputs_untouched():
    a = _period(export_row())
    b = _period(export_row(Model="Model B"))
    before = a.model_dump()
    merge_period(a, b)
    assert a.model_dump() == before
    assert "Model B" not in a.models


def test_merge_is_additive_in_any_order():
    a = _period(export_row(CPM="10"))
    b = _period(export_row(CPM="4", Impressions="500"))
    ab = merge_period(a, b)
    ba = merge_period(b, a)
    assert ab.total_impressions == ba.total_impressions
    assert ab.weighted_cpm == ba.weighted_cpm
    assert ab.avg_cpm == pytest.approx(ba.avg_cpm)


# ── merge_models ─────────────────────────────────────────────────────

def test_merge_models_tracks_history():
    models = merge_models({}, "FEB-2025", _period(export_row()))
    models = merge_models(models, "MAR-2025", _period(export_row(), export_row(Model="Model B")))
    assert models["Model A"].total_impressions == 2000
    assert models["Model A"].row_count == 2
    assert set(models["Model A"].monthly_data) == {"FEB-2025", "MAR-2025"}
    assert set(models["Model B"].monthly_data) == {"MAR-2025"}


def test_merge_models_same_period_accumulates():
    models = merge_models({}, "MAR-2025", _period(export_row()))
    merged = merge_models(models, "MAR-2025", _period(export_row()))
    assert merged["Model A"].monthly_data["MAR-2025"].clicks == 100
    assert models["Model A"].monthly_data["MAR-2025"].clicks == 50


# ── merge_accumulation ───────────────────────────────────────────────

def test_merge_accumulation_two_files_same_period():
    state = RollupState(entity="FR")
    state = merge_accumulation(state, _accumulation(
        "FR-ALLMODELS-MAR-25.csv",
        export_row(Impressions="1000", Clicks="50", CPM="10", **{"Media Spend": "100"}),
    ))
    state = merge_accumulation(state, _accumulation(
        "FR-ALLMODELS-APR-25.csv",
        export_row(Impressions="3000", Clicks="150", CPM="6.67", **{"Media Spend": "200"}),
    ))
    period = state.months["MAR-2025"]
    assert period.total_impressions == 4000
    assert period.total_clicks == 200
    assert period.total_media_spend == 300
    assert period.avg_cpm == pytest.approx(7.5025)
    assert state.processed_files == ["FR-ALLMODELS-MAR-25.csv", "FR-ALLMODELS-APR-25.csv"]


def test_merge_accumulation_rejects_duplicate_file():
    state = merge_accumulation(RollupState(entity="FR"), _accumulation("FR-ALLMODELS-MAR-25.csv", export_row()))
    with pytest.raises(ValueError, match="already been merged"):
        merge_accumulation(state, _accumulation("FR-ALLMODELS-MAR-25.csv", export_row()))


def test_merge_accumulation_is_pure():
    state = RollupState(entity="FR")
    merged = merge_accumulation(state, _accumulation("FR-ALLMODELS-MAR-25.csv", export_row()))
    assert state.months == {}
    assert state.processed_files == []
    assert merged.total_records == 1


def test_merge_accumulation_indexes_empty_file():
    state = merge_accumulation(RollupState(entity="FR"), _accumulation(
        "FR-ALLMODELS-MAR-25.csv", export_row(**{"Week of Year": "53"}),
    ))
    assert state.months == {}
    assert state.processed_files == ["FR-ALLMODELS-MAR-25.csv"]
