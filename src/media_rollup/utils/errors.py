"""Structured error handling for agent-friendly output."""

from __future__ import annotations

import json
import sys

from rich.console import Console

console = Console(stderr=True)

# Actionable hints keyed by error substring
_ERROR_HINTS: list[tuple[str, str]] = [
    ("no such file", "Check MEDIA_ROLLUP_DATA_DIR points at the directory holding the entity folders"),
    ("not found", "Check MEDIA_ROLLUP_DATA_DIR points at the directory holding the entity folders"),
    ("permission denied", "Check read/write permissions on the data and output directories"),
    ("processing index", "The index file is corrupt: fix it or run `media-rollup rollup reset --entity <code>`"),
    ("cannot read rollup", "The rollup file is corrupt: fix it or run `media-rollup rollup reset --entity <code>`"),
    ("failed to write", "Check free disk space and permissions on MEDIA_ROLLUP_OUTPUT_DIR"),
    ("invalid period", "Periods look like MAR-2025 (three-letter month, four-digit year)"),
    ("required column", "Export files need a 'Week of Year' column"),
    ("no rollup", "Run `media-rollup aggregate` first"),
]


def _get_hint(error_message: str) -> str | None:
    """Match an error message to an actionable hint."""
    lower = error_message.lower()
    for pattern, hint in _ERROR_HINTS:
        if pattern.lower() in lower:
            return hint
    return None


def handle_error(error: Exception) -> None:
    """Handle an error with structured output to stdout and human-readable output to stderr.

    Outputs a JSON error object to stdout for agent consumption:
    {"error": true, "code": "RUNTIME_ERROR", "message": "...", "hint": "..."}

    Also prints a human-readable error to stderr.
    """
    message = str(error)
    hint = _get_hint(message)
    lower = message.lower()

    # Determine error code from exception type or message
    code = "RUNTIME_ERROR"
    if isinstance(error, PermissionError) or "permission denied" in lower:
        code = "PERMISSION_DENIED"
    elif (
        isinstance(error, FileNotFoundError)
        or "no such file" in lower
        or "not found" in lower
        or "no rollup data" in lower
    ):
        code = "NOT_FOUND"
    elif isinstance(error, ValueError) or "invalid" in lower:
        code = "INVALID_DATA"
    elif "rollup" in lower or "index" in lower:
        code = "STORAGE_ERROR"

    # Structured JSON to stdout for agents
    error_obj: dict[str, object] = {
        "error": True,
        "code": code,
        "message": message,
    }
    if hint:
        error_obj["hint"] = hint

    json.dump(error_obj, sys.stdout)
    sys.stdout.write("\n")

    # Human-readable to stderr
    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
