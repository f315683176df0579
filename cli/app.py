from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_errors, render_import_result, render_preview, render_stats
from models.records import RecordKind


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for uploading energy exports and reading production statistics.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Ingestion API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    kind: RecordKind = typer.Argument(..., help="Export schema of the workbook."),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to the .xlsx export."),
    run_import: bool = typer.Option(
        False,
        "--import/--no-import",
        help="Import the staged upload right after validation.",
    ),
) -> None:
    """Validate and stage a workbook, optionally importing it."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    preview = state.client.upload_file(kind.value, file)
    typer.secho(f"Upload accepted. file_id={preview['file_id']}", fg=typer.colors.GREEN)
    render_preview(preview)

    if not run_import:
        return

    typer.echo()
    result = state.client.import_upload(kind.value, preview["file_id"])
    render_import_result(result)


@app.command("import")
def import_command(
    ctx: typer.Context,
    kind: RecordKind = typer.Argument(..., help="Export schema of the staged upload."),
    file_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
) -> None:
    """Import a previously staged upload."""
    state = _get_state(ctx)
    result = state.client.import_upload(kind.value, file_id)
    render_import_result(result)


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    days: int = typer.Option(7, "--days", "-d", min=1, help="Number of most recent days."),
) -> None:
    """Show daily production energy, newest day first."""
    state = _get_state(ctx)
    render_stats(state.client.production_stats(days))


@app.command("errors")
def errors_command(
    ctx: typer.Context,
    clear: bool = typer.Option(False, "--clear", help="Clear the error history afterwards."),
) -> None:
    """Show the import error history."""
    state = _get_state(ctx)
    render_errors(state.client.error_logs())
    if clear:
        state.client.clear_error_logs()
        typer.secho("Error history cleared.", fg=typer.colors.GREEN)
