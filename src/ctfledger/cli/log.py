"""Log subcommand: export, stats."""

from __future__ import annotations

import typer

from ctfledger.storage.db import get_connection, init_schema
from ctfledger.storage.event_log import log_stats
from ctfledger.storage.export import export_events_to_parquet

app = typer.Typer(help="Ledger event log export and statistics")


@app.command("export")
def export(
    ctx: typer.Context,
    condition: str | None = typer.Option(None, "--condition", "-c", help="Filter by condition ID"),
    output: str = typer.Option("events.parquet", "--output", "-o", help="Output path"),
) -> None:
    """Export ledger events to Parquet."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        count = export_events_to_parquet(conn, output, condition_id=condition)
        typer.echo(f"Exported {count} events to {output}")
    finally:
        conn.close()


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show event log statistics (counts, time range, by type and condition)."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        s = log_stats(conn)
        typer.echo(f"Total events: {s['total_events']}")
        typer.echo(f"Min recorded_ts: {s.get('min_recorded_ts')}")
        typer.echo(f"Max recorded_ts: {s.get('max_recorded_ts')}")
        if s.get("by_type"):
            typer.echo("By type:")
            for row in s["by_type"]:
                typer.echo(f"  {row['event_type']}  {row['count']}")
        if s.get("by_condition"):
            typer.echo("By condition (top 20):")
            for row in s["by_condition"]:
                typer.echo(f"  {row['condition_id']}  {row['count']}")
    finally:
        conn.close()
