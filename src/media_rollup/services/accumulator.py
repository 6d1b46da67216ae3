"""Weighted metric accumulation for a single export file.

Ratio metrics (CPM, CPC, CP IV, Cp NVWR) arrive pre-computed per row. They
are never averaged directly: each row adds ``ratio * weight`` to a weighted
sum and ``weight`` to a weight total, the weight being the metric's natural
denominator. Averages are taken later as weighted sum over weight total.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import BaseModel, Field

from media_rollup.models.rollup import ROW_TOTALS, WEIGHTED_METRICS, ModelTotals, PeriodAggregate
from media_rollup.models.rows import MetricRow
from media_rollup.services.discovery import SourceFile
from media_rollup.services.periods import resolve_period

logger = logging.getLogger(__name__)


class FileAccumulation(BaseModel):
    """Everything one file contributes, keyed by resolved period."""
    filename: str
    periods: dict[str, PeriodAggregate] = Field(default_factory=dict)
    records: int = 0
    dropped_rows: int = 0

    @property
    def models(self) -> set[str]:
        return {name for period in self.periods.values() for name in period.models}


def add_row(aggregate: PeriodAggregate, row: MetricRow) -> None:
    """Add one row's additive and weighted contributions to an aggregate."""
    model = aggregate.models.setdefault(row.model, ModelTotals())
    for row_attr, total_field in ROW_TOTALS:
        value = getattr(row, row_attr)
        setattr(aggregate, total_field, getattr(aggregate, total_field) + value)
        setattr(model, row_attr, getattr(model, row_attr) + value)
    aggregate.row_count += 1
    model.rows += 1

    for ratio_attr, weight_attr, sum_field, weight_field in WEIGHTED_METRICS:
        ratio = getattr(row, ratio_attr)
        weight = getattr(row, weight_attr)
        # Rows without a usable ratio still count towards the totals above
        if ratio <= 0 or weight <= 0:
            continue
        setattr(aggregate, sum_field, getattr(aggregate, sum_field) + ratio * weight)
        setattr(aggregate, weight_field, getattr(aggregate, weight_field) + weight)


def accumulate_rows(rows: Iterable[MetricRow], source: SourceFile) -> FileAccumulation:
    """Resolve each row's period and accumulate it.

    Rows without a resolvable period (no week, week 53) are counted in
    ``dropped_rows`` and contribute nothing.
    """
    result = FileAccumulation(filename=source.filename)
    for row in rows:
        period = resolve_period(row.week, source)
        if period is None:
            result.dropped_rows += 1
            continue
        aggregate = result.periods.setdefault(period, PeriodAggregate())
        add_row(aggregate, row)
        result.records += 1

    if result.dropped_rows:
        logger.info(f"{source.filename}: dropped {result.dropped_rows} row(s) without a reporting period")
    return result
