"""Replay subcommand: conditions, balances."""

from __future__ import annotations

import typer

from ctfledger.ids.derive import normalize_address
from ctfledger.replay.engine import replay_ledger
from ctfledger.storage.db import get_connection, init_schema

app = typer.Typer(help="Deterministic replay of the ledger event log")


def _source(ctx: typer.Context, source: str | None) -> str:
    return source or ctx.obj["settings"].ledger_address


@app.command("conditions")
def conditions(
    ctx: typer.Context,
    source: str | None = typer.Option(None, "--source", "-s", help="Engine address (default: ledger.address)"),
) -> None:
    """Replay and list conditions with their resolution state."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        projection = replay_ledger(conn, source=_source(ctx, source))
        typer.echo(f"Replayed {projection.events_applied} events -> {len(projection.conditions)} condition(s)")
        for cond in projection.conditions.values():
            state = f"resolved {list(cond.payout_numerators)}/{cond.payout_denominator}" if cond.resolved else "open"
            typer.echo(f"  {cond.condition_id}  slots={cond.outcome_slot_count}  {state}")
    finally:
        conn.close()


@app.command("balances")
def balances(
    ctx: typer.Context,
    owner: str | None = typer.Option(None, "--owner", "-o", help="Only this owner"),
    source: str | None = typer.Option(None, "--source", "-s", help="Engine address (default: ledger.address)"),
) -> None:
    """Replay and list non-zero position balances."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        projection = replay_ledger(conn, source=_source(ctx, source))
        rows = sorted(projection.balances.items())
        if owner:
            try:
                owner = normalize_address(owner)
            except ValueError:
                raise typer.BadParameter(f"not an address: {owner}")
            rows = [r for r in rows if r[0][0] == owner]
        typer.echo(f"{len(rows)} non-zero balance(s)")
        for (holder, position_id), balance in rows:
            typer.echo(f"  {holder}  0x{position_id:064x}  {balance}")
        bad = projection.inconsistencies()
        if bad:
            typer.echo(f"Warning: {len(bad)} negative balance(s); event log may be incomplete", err=True)
            raise typer.Exit(2)
    finally:
        conn.close()
