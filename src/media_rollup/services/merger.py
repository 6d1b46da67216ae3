"""Merging file accumulations into persisted rollup state.

Every merge is field-wise addition of totals, weighted sums and weight
totals; nothing is ever replaced. The functions return new objects and leave
their inputs untouched.
"""

from __future__ import annotations

from media_rollup.models.rollup import (
    MODEL_TOTAL_FIELDS,
    PERIOD_ADDITIVE_FIELDS,
    GlobalModelAggregate,
    ModelTotals,
    PeriodAggregate,
    RollupState,
)
from media_rollup.services.accumulator import FileAccumulation


def merge_model_totals(existing: ModelTotals | None, incoming: ModelTotals) -> ModelTotals:
    merged = existing.model_copy() if existing else ModelTotals()
    for field in MODEL_TOTAL_FIELDS:
        setattr(merged, field, getattr(merged, field) + getattr(incoming, field))
    return merged


def merge_period(existing: PeriodAggregate | None, incoming: PeriodAggregate) -> PeriodAggregate:
    """Add an incoming period accumulation onto the existing aggregate."""
    if existing is None:
        return incoming.model_copy(deep=True)

    merged = existing.model_copy(deep=True)
    for field in PERIOD_ADDITIVE_FIELDS:
        setattr(merged, field, getattr(merged, field) + getattr(incoming, field))
    for name, totals in incoming.models.items():
        merged.models[name] = merge_model_totals(merged.models.get(name), totals)
    return merged


def merge_models(
    models: dict[str, GlobalModelAggregate],
    period: str,
    incoming: PeriodAggregate,
) -> dict[str, GlobalModelAggregate]:
    """Fold a period's per-model totals into the lifetime model aggregates."""
    merged = {name: agg.model_copy(deep=True) for name, agg in models.items()}
    for name, totals in incoming.models.items():
        agg = merged.setdefault(name, GlobalModelAggregate())
        agg.total_media_spend += totals.media_spend
        agg.total_impressions += totals.impressions
        agg.total_clicks += totals.clicks
        agg.total_iv += totals.iv
        agg.total_nvwr += totals.nvwr
        agg.row_count += totals.rows
        agg.monthly_data[period] = merge_model_totals(agg.monthly_data.get(period), totals)
    return merged


def merge_accumulation(state: RollupState, accumulation: FileAccumulation) -> RollupState:
    """Merge one file's accumulation into the rollup and index the file.

    Raises:
        ValueError: If the file is already in the processed-file index.
    """
    if accumulation.filename in state.processed_files:
        raise ValueError(f"{accumulation.filename} has already been merged into the {state.entity} rollup")

    months = dict(state.months)
    models = state.models
    for period, incoming in accumulation.periods.items():
        months[period] = merge_period(months.get(period), incoming)
        models = merge_models(models, period, incoming)

    return state.model_copy(update={
        "months": months,
        "models": models,
        "processed_files": [*state.processed_files, accumulation.filename],
    })
