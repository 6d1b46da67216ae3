"""Rollup state models.

Everything here is persisted as the per-entity rollup JSON. Averages are
pydantic computed fields: they are written out for readers of the JSON but
are always derived from the accumulators and never read back.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field

from media_rollup.models.rows import UNMAPPED_MODEL

# Key under which the cross-entity rollup is stored and addressed
COMBINED_KEY = "ALL"


def safe_ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


# (row ratio attr, row weight attr, weighted-sum field, weight-total field)
WEIGHTED_METRICS: list[tuple[str, str, str, str]] = [
    ("cpm", "impressions", "weighted_cpm", "cpm_weight"),
    ("cpc", "clicks", "weighted_cpc", "cpc_weight"),
    ("cp_iv", "iv", "weighted_cp_iv", "cp_iv_weight"),
    ("cp_nvwr", "nvwr", "weighted_cp_nvwr", "cp_nvwr_weight"),
]

MODEL_TOTAL_FIELDS = ("media_spend", "impressions", "clicks", "iv", "nvwr", "rows")

PERIOD_TOTAL_FIELDS = (
    "total_media_spend", "total_impressions", "total_clicks",
    "total_iv", "total_nvwr", "row_count",
)

PERIOD_ADDITIVE_FIELDS = PERIOD_TOTAL_FIELDS + tuple(
    field for _, _, sum_field, weight_field in WEIGHTED_METRICS
    for field in (sum_field, weight_field)
)

# (row attr, PeriodAggregate total field); the ModelTotals field is the row attr
ROW_TOTALS: list[tuple[str, str]] = [
    ("media_spend", "total_media_spend"),
    ("impressions", "total_impressions"),
    ("clicks", "total_clicks"),
    ("iv", "total_iv"),
    ("nvwr", "total_nvwr"),
]


class ModelTotals(BaseModel):
    """Additive totals for one model within a period (or a model's lifetime)."""
    media_spend: float = Field(default=0.0, alias="mediaSpend")
    impressions: float = 0.0
    clicks: float = 0.0
    iv: float = 0.0
    nvwr: float = 0.0
    rows: int = 0

    model_config = {"populate_by_name": True}

    @computed_field
    @property
    def ctr(self) -> float:
        return safe_ratio(self.clicks, self.impressions)


class PeriodAggregate(BaseModel):
    """Totals and weighted accumulators for one (entity, period)."""
    total_media_spend: float = Field(default=0.0, alias="totalMediaSpend")
    total_impressions: float = Field(default=0.0, alias="totalImpressions")
    total_clicks: float = Field(default=0.0, alias="totalClicks")
    total_iv: float = Field(default=0.0, alias="totalIV")
    total_nvwr: float = Field(default=0.0, alias="totalNVWR")
    row_count: int = Field(default=0, alias="rowCount")

    weighted_cpm: float = Field(default=0.0, alias="weightedCPM")
    cpm_weight: float = Field(default=0.0, alias="cpmWeight")
    weighted_cpc: float = Field(default=0.0, alias="weightedCPC")
    cpc_weight: float = Field(default=0.0, alias="cpcWeight")
    weighted_cp_iv: float = Field(default=0.0, alias="weightedCPIV")
    cp_iv_weight: float = Field(default=0.0, alias="cpIvWeight")
    weighted_cp_nvwr: float = Field(default=0.0, alias="weightedCpNVWR")
    cp_nvwr_weight: float = Field(default=0.0, alias="cpNvwrWeight")

    models: dict[str, ModelTotals] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    @computed_field(alias="avgCTR")
    @property
    def avg_ctr(self) -> float:
        return safe_ratio(self.total_clicks, self.total_impressions)

    @computed_field(alias="avgCPM")
    @property
    def avg_cpm(self) -> float:
        return safe_ratio(self.weighted_cpm, self.cpm_weight)

    @computed_field(alias="avgCPC")
    @property
    def avg_cpc(self) -> float:
        return safe_ratio(self.weighted_cpc, self.cpc_weight)

    @computed_field(alias="avgCPIV")
    @property
    def avg_cp_iv(self) -> float:
        return safe_ratio(self.weighted_cp_iv, self.cp_iv_weight)

    @computed_field(alias="avgCpNVWR")
    @property
    def avg_cp_nvwr(self) -> float:
        return safe_ratio(self.weighted_cp_nvwr, self.cp_nvwr_weight)

    @computed_field(alias="unmappedRows")
    @property
    def unmapped_rows(self) -> int:
        unmapped = self.models.get(UNMAPPED_MODEL)
        return unmapped.rows if unmapped else 0


class GlobalModelAggregate(BaseModel):
    """Lifetime totals for one model plus its per-period history."""
    total_media_spend: float = Field(default=0.0, alias="totalMediaSpend")
    total_impressions: float = Field(default=0.0, alias="totalImpressions")
    total_clicks: float = Field(default=0.0, alias="totalClicks")
    total_iv: float = Field(default=0.0, alias="totalIV")
    total_nvwr: float = Field(default=0.0, alias="totalNVWR")
    row_count: int = Field(default=0, alias="rowCount")
    monthly_data: dict[str, ModelTotals] = Field(default_factory=dict, alias="monthlyData")

    model_config = {"populate_by_name": True}

    @computed_field(alias="avgCTR")
    @property
    def avg_ctr(self) -> float:
        return safe_ratio(self.total_clicks, self.total_impressions)


class YearToDateTotals(BaseModel):
    year: int = 0
    media_spend: float = Field(default=0.0, alias="mediaSpend")
    impressions: float = 0.0
    clicks: float = 0.0
    iv: float = 0.0
    nvwr: float = 0.0
    rows: int = 0

    model_config = {"populate_by_name": True}


class YearToDateAverages(BaseModel):
    ctr: float = 0.0
    cpm: float = 0.0
    cpc: float = 0.0
    cp_iv: float = Field(default=0.0, alias="cpIv")
    cp_nvwr: float = Field(default=0.0, alias="cpNvwr")

    model_config = {"populate_by_name": True}


class PeriodComparison(BaseModel):
    """Percentage deltas between the two latest periods."""
    previous_period: str = Field(alias="previousPeriod")
    latest_period: str = Field(alias="latestPeriod")
    media_spend_change: float = Field(default=0.0, alias="mediaSpendChange")
    impressions_change: float = Field(default=0.0, alias="impressionsChange")
    clicks_change: float = Field(default=0.0, alias="clicksChange")
    ctr_change: float = Field(default=0.0, alias="ctrChange")
    cpm_change: float = Field(default=0.0, alias="cpmChange")
    cpc_change: float = Field(default=0.0, alias="cpcChange")

    model_config = {"populate_by_name": True}


class RollupState(BaseModel):
    """The full persisted rollup for one entity."""
    entity: str
    months: dict[str, PeriodAggregate] = Field(default_factory=dict)
    models: dict[str, GlobalModelAggregate] = Field(default_factory=dict)
    year_to_date_totals: YearToDateTotals = Field(
        default_factory=YearToDateTotals, alias="yearToDateTotals",
    )
    year_to_date_averages: YearToDateAverages = Field(
        default_factory=YearToDateAverages, alias="yearToDateAverages",
    )
    monthly_comparison: PeriodComparison | None = Field(default=None, alias="monthlyComparison")
    processed_files: list[str] = Field(default_factory=list, alias="processedFiles")
    last_updated: str = Field(default="", alias="lastUpdated")

    model_config = {"populate_by_name": True}

    @property
    def total_records(self) -> int:
        """Rows merged across every period."""
        return sum(p.row_count for p in self.months.values())


class CombinedPeriod(PeriodAggregate):
    """One period summed across entities, with each entity's own aggregate."""
    countries: dict[str, PeriodAggregate] = Field(default_factory=dict)


class CombinedModelAggregate(GlobalModelAggregate):
    """One model summed across entities, with each entity's lifetime aggregate."""
    countries: dict[str, GlobalModelAggregate] = Field(default_factory=dict)


class CombinedRollup(BaseModel):
    """Read-only rollup across every entity, derived from the per-entity rollups.

    Only ever rebuilt from persisted ``RollupState``s; nothing is merged into it
    incrementally.
    """
    entities: list[str] = Field(default_factory=list)
    months: dict[str, CombinedPeriod] = Field(default_factory=dict)
    models: dict[str, CombinedModelAggregate] = Field(default_factory=dict)
    year_to_date_totals: YearToDateTotals = Field(
        default_factory=YearToDateTotals, alias="yearToDateTotals",
    )
    year_to_date_averages: YearToDateAverages = Field(
        default_factory=YearToDateAverages, alias="yearToDateAverages",
    )
    monthly_comparison: PeriodComparison | None = Field(default=None, alias="monthlyComparison")
    last_updated: str = Field(default="", alias="lastUpdated")

    model_config = {"populate_by_name": True}

    @property
    def entity(self) -> str:
        return COMBINED_KEY
