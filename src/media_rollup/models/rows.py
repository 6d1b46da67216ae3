"""Input row schema for weekly per-model performance exports."""

from __future__ import annotations

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

# Sentinel for rows that carry no model; compliance reporting counts these.
UNMAPPED_MODEL = "UNMAPPED"

WEEK_COLUMN = "Week of Year"
MODEL_COLUMN = "Model"
MEDIA_COST_COLUMNS = ("Media Spend", "Media Cost")
LEGACY_MEDIA_COST_COLUMN = "Media Cost"

REQUIRED_COLUMNS = [WEEK_COLUMN]

OPTIONAL_COLUMNS = [
    MODEL_COLUMN,
    "Impressions",
    "Clicks",
    "IV",
    "CTR",
    "CPM",
    "CPC",
    "CP IV",
    "Cp NVWR",
    "NVWR",
]


class SchemaError(ValueError):
    """A source file is missing a column the aggregation cannot do without."""


def _to_number(value: Any) -> float:
    """Coerce a raw CSV cell to float; blank, missing or non-numeric is 0."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class MetricRow(BaseModel):
    """One validated export row.

    Column names follow the export headers; either media-cost header is
    accepted. Numeric columns default to 0 and ``model`` to ``UNMAPPED``.
    """
    week: str | None = Field(default=None, alias=WEEK_COLUMN)
    model: str = Field(default=UNMAPPED_MODEL, alias=MODEL_COLUMN)
    media_spend: float = Field(
        default=0.0,
        validation_alias=AliasChoices(*MEDIA_COST_COLUMNS),
        serialization_alias="Media Spend",
    )
    impressions: float = Field(default=0.0, alias="Impressions")
    clicks: float = Field(default=0.0, alias="Clicks")
    iv: float = Field(default=0.0, alias="IV")
    ctr: float = Field(default=0.0, alias="CTR")
    cpm: float = Field(default=0.0, alias="CPM")
    cpc: float = Field(default=0.0, alias="CPC")
    cp_iv: float = Field(default=0.0, alias="CP IV")
    cp_nvwr: float = Field(default=0.0, alias="Cp NVWR")
    nvwr: float = Field(default=0.0, alias="NVWR")

    model_config = {"populate_by_name": True}

    @field_validator("week", mode="before")
    @classmethod
    def _blank_week(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("model", mode="before")
    @classmethod
    def _normalize_model(cls, value: Any) -> str:
        if value is None:
            return UNMAPPED_MODEL
        text = str(value).strip()
        return text or UNMAPPED_MODEL

    @field_validator(
        "media_spend", "impressions", "clicks", "iv", "ctr",
        "cpm", "cpc", "cp_iv", "cp_nvwr", "nvwr",
        mode="before",
    )
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return _to_number(value)


def validate_columns(fieldnames: list[str] | None) -> list[str]:
    """Check a file header against the schema.

    Returns the optional columns that are absent (their values default to 0).

    Raises:
        SchemaError: If a required column is missing.
    """
    present = {name.strip() for name in (fieldnames or []) if name}
    missing_required = [c for c in REQUIRED_COLUMNS if c not in present]
    if missing_required:
        raise SchemaError(f"Missing required column(s): {', '.join(missing_required)}")

    missing = [c for c in OPTIONAL_COLUMNS if c not in present]
    if not any(c in present for c in MEDIA_COST_COLUMNS):
        missing.insert(0, MEDIA_COST_COLUMNS[0])
    return missing


def uses_legacy_media_cost(fieldnames: list[str] | None) -> bool:
    """True when a file only carries the legacy media-cost header."""
    present = {name.strip() for name in (fieldnames or []) if name}
    return LEGACY_MEDIA_COST_COLUMN in present and MEDIA_COST_COLUMNS[0] not in present


def parse_row(raw: dict[str, Any]) -> MetricRow:
    """Validate a raw reader record into a MetricRow.

    Header whitespace is stripped so ``" Clicks"`` still maps to ``Clicks``.
    """
    cleaned = {k.strip(): v for k, v in raw.items() if k is not None}
    return MetricRow.model_validate(cleaned)
