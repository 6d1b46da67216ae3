"""Cross-entity rollup.

Derived after each aggregation run from the persisted per-entity rollups,
using the same additive merges as a single entity. Entities never read or
write each other's state; only this read-only view spans them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from media_rollup.models.rollup import (
    CombinedModelAggregate,
    CombinedPeriod,
    CombinedRollup,
    GlobalModelAggregate,
    PeriodAggregate,
    RollupState,
)
from media_rollup.services.comparator import refresh_derived
from media_rollup.services.merger import merge_models, merge_period


def combine_rollups(
    states: Iterable[RollupState],
    year: int | None = None,
    now: datetime | None = None,
) -> CombinedRollup:
    """Sum entity rollups period by period and model by model.

    Each combined period and model keeps the contributing entity's own
    aggregate under ``countries``.
    """
    months: dict[str, PeriodAggregate] = {}
    models: dict[str, GlobalModelAggregate] = {}
    period_countries: dict[str, dict[str, PeriodAggregate]] = {}
    model_countries: dict[str, dict[str, GlobalModelAggregate]] = {}
    entities: list[str] = []

    for state in sorted(states, key=lambda s: s.entity):
        entities.append(state.entity)
        for period, aggregate in state.months.items():
            months[period] = merge_period(months.get(period), aggregate)
            models = merge_models(models, period, aggregate)
            period_countries.setdefault(period, {})[state.entity] = aggregate.model_copy(deep=True)
        for name, model in state.models.items():
            model_countries.setdefault(name, {})[state.entity] = model.model_copy(deep=True)

    combined = CombinedRollup(
        entities=entities,
        months={
            period: CombinedPeriod(**dict(aggregate), countries=period_countries[period])
            for period, aggregate in months.items()
        },
        models={
            name: CombinedModelAggregate(**dict(aggregate), countries=model_countries.get(name, {}))
            for name, aggregate in models.items()
        },
    )
    return refresh_derived(combined, year=year, now=now)
