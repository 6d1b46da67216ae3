"""CLI commands for inspecting and resetting persisted rollups."""

from __future__ import annotations

from typing import Annotated, Any

import typer
from rich.console import Console

from media_rollup.config import get_config
from media_rollup.models.rollup import COMBINED_KEY, CombinedRollup, RollupState
from media_rollup.services.comparator import refresh_derived
from media_rollup.services.export import SUMMARY_COLUMNS, summary_rows
from media_rollup.services.periods import sort_periods
from media_rollup.services.store import JsonRollupStore, StoreError
from media_rollup.utils.errors import handle_error
from media_rollup.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="rollup", help="Inspect and reset persisted rollups.")

MODEL_COLUMNS = ["model", "mediaSpend", "impressions", "clicks", "ctr", "rows", "periods"]
HISTORY_COLUMNS = ["period", "mediaSpend", "impressions", "clicks", "iv", "nvwr", "ctr", "rows"]


def _build_store() -> JsonRollupStore:
    config = get_config()
    return JsonRollupStore(
        config.settings.output_dir,
        retries=config.settings.write_retries,
        retry_delay=config.settings.retry_delay,
    )


def _load(store: JsonRollupStore, entity: str) -> RollupState | CombinedRollup:
    """An entity's rollup, or the cross-entity one for ``ALL``."""
    entity = entity.upper()
    if entity == COMBINED_KEY:
        state = store.get_combined()
    else:
        state = store.get(entity)
    if state is None or not state.months:
        raise RuntimeError(f"No rollup data for {entity}")
    return state


@app.command("show")
def show(
    entity: Annotated[str, typer.Option("--entity", "-e", help="Entity code, e.g. FR, or ALL for every entity")] = ...,
    year: Annotated[int | None, typer.Option("--year", help="Year for the YTD row (default: current year)")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o")] = OutputFormat.TABLE,
) -> None:
    """Show the monthly summary, YTD row and month-over-month changes."""
    store = _build_store()
    try:
        state = refresh_derived(_load(store, entity), year=year)
    except (StoreError, RuntimeError) as e:
        handle_error(e)
        raise typer.Exit(1)

    rows = summary_rows(state)
    comparison = state.monthly_comparison

    if output == OutputFormat.JSON:
        data = {
            "entity": state.entity,
            "months": rows,
            "monthlyComparison": comparison.model_dump(by_alias=True) if comparison else None,
        }
        if isinstance(state, CombinedRollup):
            data["entities"] = state.entities
        print_output(data, output)
        return

    print_output(rows, output, columns=SUMMARY_COLUMNS, title=f"Monthly Summary ({state.entity})")
    if comparison and output == OutputFormat.TABLE:
        changes = comparison.model_dump(by_alias=True)
        title = f"{comparison.previous_period} → {comparison.latest_period}"
        print_output(
            [{"metric": k.removesuffix("Change"), "change %": round(v, 2)}
             for k, v in changes.items() if k.endswith("Change")],
            output,
            title=title,
        )


@app.command("models")
def models(
    entity: Annotated[str, typer.Option("--entity", "-e", help="Entity code, e.g. FR, or ALL for every entity")] = ...,
    model: Annotated[str | None, typer.Option("--model", "-m", help="Show one model's period history")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o")] = OutputFormat.TABLE,
) -> None:
    """List per-model lifetime totals, or one model's history with --model."""
    store = _build_store()
    try:
        state = _load(store, entity)
        if model:
            data = _model_history(state, model)
            print_output(data, output, columns=HISTORY_COLUMNS, title=f"{model} ({state.entity})")
            return
    except (StoreError, RuntimeError, ValueError) as e:
        handle_error(e)
        raise typer.Exit(1)

    data = sorted(
        (
            {
                "model": name,
                "mediaSpend": agg.total_media_spend,
                "impressions": agg.total_impressions,
                "clicks": agg.total_clicks,
                "ctr": agg.avg_ctr,
                "rows": agg.row_count,
                "periods": len(agg.monthly_data),
            }
            for name, agg in state.models.items()
        ),
        key=lambda r: r["mediaSpend"],
        reverse=True,
    )
    print_output(data, output, columns=MODEL_COLUMNS, title=f"Models ({state.entity})")


def _model_history(state: RollupState | CombinedRollup, model: str) -> list[dict[str, Any]]:
    agg = state.models.get(model)
    if agg is None:
        available = ", ".join(sorted(state.models)) or "none"
        raise ValueError(f"Unknown model '{model}' for {state.entity}. Available: {available}")
    history = []
    for period in sort_periods(agg.monthly_data):
        totals = agg.monthly_data[period]
        history.append({
            "period": period,
            "mediaSpend": totals.media_spend,
            "impressions": totals.impressions,
            "clicks": totals.clicks,
            "iv": totals.iv,
            "nvwr": totals.nvwr,
            "ctr": totals.ctr,
            "rows": totals.rows,
        })
    return history


@app.command("reset")
def reset(
    entity: Annotated[str, typer.Option("--entity", "-e", help="Entity code, e.g. FR")] = ...,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete an entity's rollup and index so the next run reprocesses every file."""
    if not yes:
        typer.confirm(f"Delete the {entity.upper()} rollup, index and summary?", abort=True)

    store = _build_store()
    try:
        removed = store.reset(entity)
    except OSError as e:
        handle_error(e)
        raise typer.Exit(1)
    console.print(f"Removed {removed} artifact(s) for {entity.upper()}")
