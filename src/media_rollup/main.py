"""media-rollup CLI — entry point.

Incremental month/year rollups of weekly per-country marketing exports.
Run without a command to aggregate every entity under the data root.
"""

from __future__ import annotations

import logging

import typer

from media_rollup.commands.aggregate_cmd import aggregate
from media_rollup.commands.rollup_cmd import app as rollup_app

app = typer.Typer(
    name="media-rollup",
    help="Aggregate weekly marketing exports into monthly and year-to-date rollups.",
)

# Register commands
app.command("aggregate")(aggregate)
app.add_typer(rollup_app, name="rollup")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """media-rollup — aggregate, inspect and reset entity rollups."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    if ctx.invoked_subcommand is None:
        aggregate()


if __name__ == "__main__":
    app()
