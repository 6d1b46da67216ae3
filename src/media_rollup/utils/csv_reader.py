"""CSV reading for weekly export files."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any


def read_rows(file_path: str | Path) -> tuple[list[str], list[dict[str, Any]]]:
    """Read an export file into its header and a list of row dicts.

    A UTF-8 byte-order mark (common in spreadsheet exports) is stripped.

    Args:
        file_path: Path to the CSV file.

    Returns:
        (fieldnames, rows)

    Raises:
        FileNotFoundError: If the file does not exist.
        csv.Error: If the file cannot be tokenized.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Export file not found: {file_path}")

    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f, strict=True)
        rows = list(reader)
        fieldnames = list(reader.fieldnames or [])
    return fieldnames, rows
