"""Source file discovery and processed-file filtering."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel

from media_rollup.services.periods import MONTH_CODES, period_key

logger = logging.getLogger(__name__)

_FILENAME_PATTERN = re.compile(
    r"^(?P<entity>[A-Z]{2})-ALLMODELS-(?P<month>[A-Z]{3})-(?P<year>\d{2})\.csv$",
    re.IGNORECASE,
)


class SourceFile(BaseModel):
    """A weekly export file for one entity and month."""
    entity: str
    filename: str
    path: str
    month: str
    year: int

    @property
    def period(self) -> str:
        return period_key(self.month, self.year)


def parse_source_filename(filename: str, entity: str, directory: str | Path = "") -> SourceFile | None:
    """Parse ``{ENTITY}-ALLMODELS-{MON}-{YY}.csv``.

    Returns None when the name does not follow the convention or belongs to
    another entity.
    """
    match = _FILENAME_PATTERN.match(filename)
    if not match:
        return None
    if match.group("entity").upper() != entity.upper():
        return None
    month = match.group("month").upper()
    if month not in MONTH_CODES:
        return None
    return SourceFile(
        entity=entity.upper(),
        filename=filename,
        path=str(Path(directory) / filename),
        month=month,
        year=2000 + int(match.group("year")),
    )


def list_source_files(entity: str, directory: str | Path) -> list[SourceFile]:
    """All export files for an entity, in filesystem listing order.

    Raises:
        OSError: If the directory is missing or unreadable.
    """
    files: list[SourceFile] = []
    for name in os.listdir(directory):
        source = parse_source_filename(name, entity, directory)
        if source is None:
            logger.debug(f"Ignoring {name}: not a {entity} export")
            continue
        if not Path(source.path).is_file():
            continue
        files.append(source)
    return files


def find_new_files(
    entity: str,
    directory: str | Path,
    processed: list[str] | set[str],
) -> list[SourceFile]:
    """Export files for an entity that are not in the processed-file index."""
    seen = set(processed)
    return [f for f in list_source_files(entity, directory) if f.filename not in seen]


def discover_entities(root: str | Path) -> list[str]:
    """Entity codes under the data root: every two-character directory.

    Raises:
        OSError: If the root is missing or unreadable.
    """
    root = Path(root)
    entities = {
        entry.name.upper()
        for entry in root.iterdir()
        if entry.is_dir() and len(entry.name) == 2 and entry.name.isalpha()
    }
    return sorted(entities)


def entity_directory(root: str | Path, entity: str) -> Path:
    """The directory holding an entity's exports, matched case-insensitively.

    ``data/pt/`` serves entity ``PT``. An exact-case match wins; when nothing
    matches the upper-case path is returned and listing it raises.
    """
    root = Path(root)
    exact = root / entity
    if exact.is_dir():
        return exact
    if root.is_dir():
        for entry in sorted(root.iterdir()):
            if entry.is_dir() and entry.name.upper() == entity.upper():
                return entry
    return root / entity.upper()
