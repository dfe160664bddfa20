"""Ids subcommand: derive condition, collection and position identifiers offline."""

from __future__ import annotations

import typer

from ctfledger.ids.derive import (
    ROOT_COLLECTION_ID,
    get_collection_id,
    get_condition_id,
    get_nested_collection_id,
    get_position_id,
)

app = typer.Typer(help="Derive condition / collection / position ids")


def _parse_int(value: str) -> int:
    """Accept decimal, 0x hex or 0b binary."""
    try:
        return int(value, 0)
    except ValueError:
        raise typer.BadParameter(f"not an integer: {value}")


@app.command("condition")
def condition(
    oracle: str = typer.Argument(..., help="Oracle address"),
    question_id: str = typer.Argument(..., help="Question id (0x + 64 hex)"),
    payout_denominator: int = typer.Argument(..., help="Payout denominator"),
    outcome_slot_count: int = typer.Argument(..., help="Number of outcome slots"),
) -> None:
    """Print the condition id."""
    try:
        typer.echo(get_condition_id(oracle, question_id, payout_denominator, outcome_slot_count))
    except ValueError as e:
        typer.echo(f"Invalid input: {e}", err=True)
        raise typer.Exit(1)


@app.command("collection")
def collection(
    condition_id: str = typer.Argument(..., help="Condition id"),
    index_set: str = typer.Argument(..., help="Index set bitmask (e.g. 1, 0b10, 0x3)"),
    parent: str = typer.Option(ROOT_COLLECTION_ID, "--parent", help="Parent collection id"),
) -> None:
    """Print the collection id (combined with --parent when given)."""
    mask = _parse_int(index_set)
    try:
        if parent == ROOT_COLLECTION_ID:
            typer.echo(get_collection_id(condition_id, mask))
        else:
            typer.echo(get_nested_collection_id(parent, condition_id, mask))
    except ValueError as e:
        typer.echo(f"Invalid input: {e}", err=True)
        raise typer.Exit(1)


@app.command("position")
def position(
    collateral: str = typer.Argument(..., help="Collateral token address"),
    collection_id: str = typer.Option(ROOT_COLLECTION_ID, "--collection", "-c", help="Collection id"),
    token_id: str | None = typer.Option(None, "--token-id", "-t", help="Collateral sub-id (multi-token collateral)"),
    as_hex: bool = typer.Option(False, "--hex", help="Print as 0x hex instead of decimal"),
) -> None:
    """Print the position (token) id."""
    sub_id = _parse_int(token_id) if token_id is not None else None
    try:
        pid = get_position_id(collateral, collection_id, sub_id)
    except ValueError as e:
        typer.echo(f"Invalid input: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"0x{pid:064x}" if as_hex else str(pid))
