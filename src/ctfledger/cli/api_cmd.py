"""API server command."""

import typer

from ctfledger.api.main import configure_api, run_api

app = typer.Typer(help="Start read-only query API over the event log")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    profile = ctx.obj["profile"]
    configure_api(db_path=settings.db_path, source=settings.ledger_address, profile=profile)
    run_api(host=host, port=port, profile=profile)
