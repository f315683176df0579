from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_preview(payload: Dict[str, Any]) -> None:
    echo_heading("Upload Preview")
    echo_key_values(
        [
            ("file_id", payload.get("file_id")),
            ("record_kind", payload.get("record_kind")),
            ("total_records", payload.get("total_records")),
        ]
    )
    rows = payload.get("preview_data") or []
    typer.echo()
    if not rows:
        typer.echo("No records to preview.")
        return
    for row in rows:
        typer.echo("  - " + ", ".join(f"{key}={value}" for key, value in row.items()))


def render_import_result(payload: Dict[str, Any]) -> None:
    echo_heading("Import Result")
    echo_key_values(
        [
            ("inserted_count", payload.get("inserted_count")),
            ("updated_count", payload.get("updated_count")),
            ("first_date", payload.get("first_date")),
            ("last_date", payload.get("last_date")),
            ("error_count", payload.get("error_count")),
        ]
    )
    render_errors(payload.get("errors") or [])


def render_errors(errors: List[str]) -> None:
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - {error}")
    else:
        typer.echo("No errors recorded.")


def render_stats(stats: List[Dict[str, Any]]) -> None:
    echo_heading("Daily Production")
    if not stats:
        typer.echo("No production data available.")
        return
    for stat in stats:
        typer.echo(f"{stat.get('date')}: {float(stat.get('energy_units') or 0.0):.2f}")
