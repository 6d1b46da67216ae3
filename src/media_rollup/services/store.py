"""Rollup persistence.

Aggregation code only sees the ``RollupStore`` protocol. ``JsonRollupStore``
keeps three artifacts per entity in ``{output_dir}``:

- ``{entity}-aggregated.json``       full rollup state
- ``{entity}-processing-index.json`` JSON array of merged filenames
- ``{entity}-monthly-summary.csv``   flattened period summary

The cross-entity rollup lives beside them as ``all-aggregated.json`` and
``all-monthly-summary.csv``; it has no index of its own.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from media_rollup.models.rollup import COMBINED_KEY, CombinedRollup, RollupState
from media_rollup.services.export import render_summary_csv, summary_rows

logger = logging.getLogger(__name__)

_ROLLUP_SUFFIX = "-aggregated.json"


class StoreError(RuntimeError):
    """A rollup artifact could not be read or written."""


class RollupStore(Protocol):
    def get(self, entity: str) -> RollupState: ...

    def put(self, entity: str, state: RollupState) -> None: ...

    def reset(self, entity: str) -> int: ...

    def list_entities(self) -> list[str]: ...

    def get_combined(self) -> CombinedRollup | None: ...

    def put_combined(self, combined: CombinedRollup) -> None: ...


class JsonRollupStore:
    """JSON-file backed rollup store with staged, atomic commits."""

    def __init__(
        self,
        output_dir: str = "./data/aggregated",
        retries: int = 3,
        retry_delay: float = 0.5,
    ) -> None:
        self._dir = Path(output_dir)
        self._retries = max(1, retries)
        self._retry_delay = retry_delay

    # ── paths ─────────────────────────────────────────────────────────

    def rollup_path(self, entity: str) -> Path:
        return self._dir / f"{entity.lower()}{_ROLLUP_SUFFIX}"

    def index_path(self, entity: str) -> Path:
        return self._dir / f"{entity.lower()}-processing-index.json"

    def summary_path(self, entity: str) -> Path:
        return self._dir / f"{entity.lower()}-monthly-summary.csv"

    # ── reads ─────────────────────────────────────────────────────────

    def load_index(self, entity: str) -> list[str]:
        """Load the processed-file index. A missing index is empty."""
        path = self.index_path(entity)
        if not path.exists():
            return []
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read processing index {path}: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"Processing index {path} is not a JSON array")
        return [str(name) for name in data]

    def get(self, entity: str) -> RollupState:
        """Load an entity's rollup; the index file is unioned into processed_files."""
        entity = entity.upper()
        path = self.rollup_path(entity)
        state = RollupState(entity=entity)
        if path.exists():
            try:
                with open(path) as f:
                    state = RollupState.model_validate(json.load(f))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                raise StoreError(f"Cannot read rollup {path}: {e}") from e

        processed = list(state.processed_files)
        for name in self.load_index(entity):
            if name not in processed:
                processed.append(name)
        return state.model_copy(update={"entity": entity, "processed_files": processed})

    def list_entities(self) -> list[str]:
        """Entity codes with a persisted rollup, excluding the combined one."""
        if not self._dir.is_dir():
            return []
        entities = {
            path.name[: -len(_ROLLUP_SUFFIX)].upper()
            for path in self._dir.glob(f"*{_ROLLUP_SUFFIX}")
        }
        entities.discard(COMBINED_KEY)
        return sorted(entities)

    def get_combined(self) -> CombinedRollup | None:
        """Load the cross-entity rollup, or None if none has been built."""
        path = self.rollup_path(COMBINED_KEY)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return CombinedRollup.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StoreError(f"Cannot read rollup {path}: {e}") from e

    # ── writes ────────────────────────────────────────────────────────

    def put(self, entity: str, state: RollupState) -> None:
        """Persist rollup, summary and index.

        All three are staged to temp files first; nothing is committed if any
        staging write fails. The index is committed last.

        Raises:
            StoreError: If an artifact cannot be written.
        """
        entity = entity.upper()
        self._commit(entity, [
            (self.rollup_path(entity), json.dumps(state.model_dump(by_alias=True), indent=2)),
            (self.summary_path(entity), render_summary_csv(summary_rows(state))),
            (self.index_path(entity), json.dumps(sorted(set(state.processed_files)), indent=2)),
        ])

    def put_combined(self, combined: CombinedRollup) -> None:
        """Persist the cross-entity rollup and its summary.

        Raises:
            StoreError: If an artifact cannot be written.
        """
        self._commit(COMBINED_KEY, [
            (self.rollup_path(COMBINED_KEY), json.dumps(combined.model_dump(by_alias=True), indent=2)),
            (self.summary_path(COMBINED_KEY), render_summary_csv(summary_rows(combined))),
        ])

    def reset(self, entity: str) -> int:
        """Delete an entity's artifacts so the next run reprocesses every file.

        Returns the number of files removed.
        """
        removed = 0
        for path in (self.rollup_path(entity), self.index_path(entity), self.summary_path(entity)):
            if path.exists():
                path.unlink()
                removed += 1
        return removed

    def _commit(self, entity: str, artifacts: list[tuple[Path, str]]) -> None:
        """Stage every artifact, then replace the targets in order."""
        staged: list[tuple[Path, Path]] = []
        try:
            for target, text in artifacts:
                staged.append((self._stage(target, text), target))
            for tmp, target in staged:
                os.replace(tmp, target)
                logger.info(f"Wrote {target}")
        except OSError as e:
            raise StoreError(f"Failed to write {entity} rollup artifacts: {e}") from e
        finally:
            for tmp, _ in staged:
                if tmp.exists():
                    tmp.unlink()

    def _stage(self, target: Path, text: str) -> Path:
        """Write text to a temp file beside target, retrying with backoff."""
        for attempt in range(1, self._retries + 1):
            tmp_name = ""
            try:
                self._dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{target.name}.", suffix=".tmp")
                with os.fdopen(fd, "w", newline="") as f:
                    f.write(text)
                return Path(tmp_name)
            except OSError as e:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                if attempt == self._retries:
                    raise
                wait = self._backoff(attempt)
                logger.warning(f"Writing {target.name} failed: {e}. Retrying in {wait:.1f}s...")
                time.sleep(wait)
        raise OSError(f"Writing {target} failed after {self._retries} attempts")

    def _backoff(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        return self._retry_delay * (2 ** (attempt - 1))
