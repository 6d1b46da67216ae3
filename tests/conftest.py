"""Shared fixtures for the media-rollup test suite."""
from __future__ import annotations

import csv
from pathlib import Path

import pytest

from media_rollup.config import Config, EntityProfile, Settings
from media_rollup.services.discovery import SourceFile
from media_rollup.services.store import JsonRollupStore

EXPORT_HEADER = [
    "Week of Year", "Model", "Media Spend", "Impressions", "Clicks", "IV",
    "CTR", "CPM", "CPC", "CP IV", "Cp NVWR", "NVWR",
]


@pytest.fixture
def fake_settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        output_dir=str(tmp_path / "data" / "aggregated"),
        write_retries=2,
        retry_delay=0.0,
    )


@pytest.fixture
def fake_entities() -> dict[str, EntityProfile]:
    return {
        "FR": EntityProfile(name="France"),
        "PT": EntityProfile(name="Portugal"),
        "ES": EntityProfile(name="Spain", enabled=False),
    }


@pytest.fixture
def fake_config(fake_settings, fake_entities) -> Config:
    return Config(settings=fake_settings, entities=fake_entities)


@pytest.fixture
def data_dir(fake_settings) -> Path:
    path = Path(fake_settings.data_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def store(fake_settings) -> JsonRollupStore:
    return JsonRollupStore(fake_settings.output_dir, retries=2, retry_delay=0.0)


@pytest.fixture
def make_export(data_dir):
    """Write an export CSV under ``data_dir/{entity}/`` and return its path."""

    def _make(filename: str, rows: list[dict], header: list[str] | None = None) -> Path:
        entity = filename[:2].upper()
        directory = data_dir / entity
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        fields = header or EXPORT_HEADER
        with open(path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fields, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow({k: row.get(k, "") for k in fields})
        return path

    return _make


@pytest.fixture
def mar_source() -> SourceFile:
    return SourceFile(
        entity="FR",
        filename="FR-ALLMODELS-MAR-25.csv",
        path="data/FR/FR-ALLMODELS-MAR-25.csv",
        month="MAR",
        year=2025,
    )


def export_row(**overrides) -> dict:
    """A raw export row with sensible defaults, keyed by CSV header."""
    row = {
        "Week of Year": "10",
        "Model": "Model A",
        "Media Spend": "100",
        "Impressions": "1000",
        "Clicks": "50",
        "IV": "20",
        "CTR": "0.05",
        "CPM": "10",
        "CPC": "2",
        "CP IV": "5",
        "Cp NVWR": "25",
        "NVWR": "4",
    }
    row.update(overrides)
    return row
