"""CLI command for incremental aggregation runs."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from media_rollup.config import get_config
from media_rollup.services.aggregation import AggregationService
from media_rollup.services.store import JsonRollupStore
from media_rollup.utils.errors import handle_error
from media_rollup.utils.output import OutputFormat, print_output

console = Console(stderr=True)

RUN_COLUMNS = ["entity", "name", "status", "filesProcessed", "filesSkipped", "records", "droppedRows", "error"]


def _build_service() -> AggregationService:
    config = get_config()
    store = JsonRollupStore(
        config.settings.output_dir,
        retries=config.settings.write_retries,
        retry_delay=config.settings.retry_delay,
    )
    return AggregationService(store, config.settings.data_dir, config)


def aggregate(
    entity: Annotated[list[str] | None, typer.Option("--entity", "-e", help="Entity code(s); default: every entity under the data root")] = None,
    reprocess: Annotated[bool, typer.Option("--reprocess", help="Ignore the processed-file index and rebuild from every file")] = False,
    year: Annotated[int | None, typer.Option("--year", help="Year for year-to-date figures (default: current year)")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o")] = OutputFormat.TABLE,
) -> None:
    """Aggregate new export files into each entity's rollup.

    Files already listed in an entity's processing index are skipped. A
    failing entity is reported in the summary and does not stop the others.
    """
    service = _build_service()

    try:
        entities = [e.upper() for e in entity] if entity else None
        results = service.aggregate_all(entities=entities, reprocess=reprocess, year=year)
    except OSError as e:
        handle_error(e)
        raise typer.Exit(1)

    print_output([r.summary() for r in results], output, columns=RUN_COLUMNS, title="Aggregation Summary")

    for result in results:
        for err in result.errors:
            console.print(f"[yellow]Skipped {result.entity}/{err.filename}:[/yellow] {err.message}")
        if result.failed:
            console.print(f"[red]{result.entity} failed:[/red] {result.error}")
