"""Configuration management for media-rollup.

Loads directory and retry settings from .env and entity profiles from entities.yaml.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv


class EntityProfile(BaseModel):
    """Display and scheduling options for a single entity (country)."""
    name: str
    enabled: bool = True


class Settings(BaseModel):
    """Application settings loaded from environment variables."""
    data_dir: str = Field(default="./data", description="Root holding one sub-directory per entity")
    output_dir: str = Field(default="./data/aggregated", description="Directory for rollup artifacts")
    write_retries: int = Field(default=3, description="Attempts per artifact write")
    retry_delay: float = Field(default=0.5, description="Base delay between write attempts in seconds")


class Config(BaseModel):
    """Full application configuration."""
    settings: Settings
    entities: dict[str, EntityProfile] = Field(default_factory=dict)

    def get_entity(self, entity: str) -> EntityProfile:
        """Get an entity profile by code (e.g. FR, PT).

        Entities missing from entities.yaml still aggregate; they get a
        profile named after their code.
        """
        entity = entity.upper()
        return self.entities.get(entity, EntityProfile(name=entity))

    def is_enabled(self, entity: str) -> bool:
        return self.get_entity(entity).enabled


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (where config/ lives)."""
    current = Path(__file__).resolve().parent
    for parent in [current, *current.parents]:
        if (parent / "config" / "entities.yaml").exists():
            return parent
    # Fallback: cwd
    return Path.cwd()


def _load_entities(project_root: Path) -> dict[str, EntityProfile]:
    """Load entity profiles from entities.yaml, if present."""
    entities_path = project_root / "config" / "entities.yaml"
    if not entities_path.exists():
        return {}

    with open(entities_path) as f:
        data = yaml.safe_load(f) or {}

    entities = {}
    for code, profile_data in (data.get("entities") or {}).items():
        entities[code.upper()] = EntityProfile(**(profile_data or {"name": code.upper()}))
    return entities


def _env(*keys: str, default: str = "") -> str:
    """Try multiple env var names, return the first one found."""
    for key in keys:
        val = os.environ.get(key, "")
        if val:
            return val.strip().strip('"')
    return default


def _load_settings() -> Settings:
    """Load settings from environment variables.

    Supports both MEDIA_ROLLUP_* and the short DATA_DIR / OUTPUT_DIR names.
    """
    return Settings(
        data_dir=_env("MEDIA_ROLLUP_DATA_DIR", "DATA_DIR", default="./data"),
        output_dir=_env("MEDIA_ROLLUP_OUTPUT_DIR", "OUTPUT_DIR", default="./data/aggregated"),
        write_retries=int(_env("MEDIA_ROLLUP_WRITE_RETRIES", default="3")),
        retry_delay=float(_env("MEDIA_ROLLUP_RETRY_DELAY", default="0.5")),
    )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load and cache the full application configuration."""
    project_root = _find_project_root()

    # Load .env from project root if it exists
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    settings = _load_settings()
    entities = _load_entities(project_root)

    return Config(settings=settings, entities=entities)
