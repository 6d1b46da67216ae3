"""Per-entity aggregation runs: discover, accumulate, merge, persist."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from media_rollup.config import Config
from media_rollup.models.rollup import CombinedRollup, RollupState
from media_rollup.models.rows import SchemaError, parse_row, uses_legacy_media_cost, validate_columns
from media_rollup.models.runs import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_UP_TO_DATE,
    EntityRunResult,
    FileError,
)
from media_rollup.services.accumulator import FileAccumulation, accumulate_rows
from media_rollup.services.combined import combine_rollups
from media_rollup.services.comparator import refresh_derived
from media_rollup.services.discovery import SourceFile, discover_entities, entity_directory, find_new_files
from media_rollup.services.merger import merge_accumulation
from media_rollup.services.periods import sort_periods
from media_rollup.services.store import RollupStore, StoreError
from media_rollup.utils.csv_reader import read_rows

logger = logging.getLogger(__name__)
console = Console(stderr=True)

# Failures that skip a single file without failing the entity
FILE_ERRORS = (OSError, csv.Error, UnicodeDecodeError, SchemaError, ValidationError)


def load_source_file(source: SourceFile) -> FileAccumulation:
    """Read, validate and accumulate one export file."""
    fieldnames, raw_rows = read_rows(source.path)
    missing = validate_columns(fieldnames)
    if missing:
        logger.warning(f"{source.filename}: missing column(s) {', '.join(missing)}; defaulting to 0")
    if uses_legacy_media_cost(fieldnames):
        logger.warning(f"{source.filename}: uses legacy 'Media Cost' column")
    rows = [parse_row(raw) for raw in raw_rows]
    accumulation = accumulate_rows(rows, source)
    logger.info(
        f"{source.filename}: {accumulation.records} row(s) across "
        f"{', '.join(sort_periods(accumulation.periods)) or 'no periods'}; "
        f"models {', '.join(sorted(accumulation.models)) or 'none'}"
    )
    return accumulation


class AggregationService:
    """Incrementally aggregates entity export directories into rollups."""

    def __init__(self, store: RollupStore, data_dir: str, config: Config | None = None) -> None:
        self._store = store
        self._data_dir = Path(data_dir)
        self._config = config

    def _entity_name(self, entity: str) -> str:
        return self._config.get_entity(entity).name if self._config else entity

    def aggregate_entity(
        self,
        entity: str,
        reprocess: bool = False,
        year: int | None = None,
    ) -> EntityRunResult:
        """Merge every new export file for one entity and persist the rollup.

        Per-file read failures are recorded and skipped. Failures loading or
        writing the rollup mark the entity FAILED; they are not raised.
        """
        entity = entity.upper()
        result = EntityRunResult(entity=entity, name=self._entity_name(entity))
        console.print(f"Aggregating {entity}...")

        try:
            state = RollupState(entity=entity) if reprocess else self._store.get(entity)
            new_files = find_new_files(entity, entity_directory(self._data_dir, entity), state.processed_files)
        except (StoreError, OSError) as e:
            logger.error(f"{entity}: {e}")
            result.status = STATUS_FAILED
            result.error = str(e)
            return result

        if not new_files:
            console.print(f"  No new files for {entity}")
            result.status = STATUS_UP_TO_DATE
            result.records = state.total_records
            result.periods = sort_periods(state.months)
            return result

        console.print(f"  {len(new_files)} new file(s): {', '.join(f.filename for f in new_files)}")
        for source in new_files:
            try:
                accumulation = load_source_file(source)
            except FILE_ERRORS as e:
                logger.error(f"Error processing {source.filename}: {e}")
                result.errors.append(FileError(filename=source.filename, message=str(e)))
                result.files_skipped += 1
                continue
            state = merge_accumulation(state, accumulation)
            result.files_processed += 1
            result.dropped_rows += accumulation.dropped_rows

        state = refresh_derived(state, year=year)
        try:
            self._store.put(entity, state)
        except StoreError as e:
            logger.error(f"{entity}: {e}")
            result.status = STATUS_FAILED
            result.error = str(e)
            return result

        result.status = STATUS_OK
        result.records = state.total_records
        result.periods = sort_periods(state.months)
        console.print(
            f"  {entity}: {result.files_processed} processed, {result.files_skipped} skipped, "
            f"{result.records} records"
        )
        return result

    def aggregate_all(
        self,
        entities: list[str] | None = None,
        reprocess: bool = False,
        year: int | None = None,
    ) -> list[EntityRunResult]:
        """Aggregate each entity in turn; one entity failing never stops the rest.

        The cross-entity rollup is rebuilt afterwards when any entity changed
        or none has been written yet.

        Raises:
            OSError: If no entities were given and the data root cannot be listed.
        """
        if entities is None:
            entities = discover_entities(self._data_dir)
            console.print(f"Found {len(entities)} entities: {', '.join(entities)}")

        results = []
        for entity in entities:
            if self._config and not self._config.is_enabled(entity):
                logger.info(f"Skipping disabled entity {entity}")
                continue
            results.append(self.aggregate_entity(entity, reprocess=reprocess, year=year))

        if any(r.status == STATUS_OK for r in results) or not self._has_combined():
            self.build_combined(year=year)
        return results

    def build_combined(self, year: int | None = None) -> CombinedRollup | None:
        """Rebuild the cross-entity rollup from every persisted entity rollup.

        Disabled entities and unreadable rollups are left out. Returns None when
        there is nothing to combine or the write fails.
        """
        states = []
        for entity in self._store.list_entities():
            if self._config and not self._config.is_enabled(entity):
                continue
            try:
                states.append(self._store.get(entity))
            except StoreError as e:
                logger.warning(f"Leaving {entity} out of the combined rollup: {e}")
        if not states:
            return None

        combined = combine_rollups(states, year=year)
        try:
            self._store.put_combined(combined)
        except StoreError as e:
            logger.error(f"Combined rollup: {e}")
            console.print(f"[red]Combined rollup not written:[/red] {e}")
            return None
        console.print(
            f"Combined rollup: {len(combined.entities)} entities, {len(combined.months)} periods"
        )
        return combined

    def _has_combined(self) -> bool:
        try:
            return self._store.get_combined() is not None
        except StoreError:
            return False
