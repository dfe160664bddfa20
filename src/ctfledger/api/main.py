"""FastAPI read-only query API over the ledger event log."""

from __future__ import annotations

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from ctfledger.api.schemas import (
    ConditionResponse,
    ConditionsListResponse,
    ErrorResponse,
    EventsStatsResponse,
    HealthResponse,
    PositionBalance,
    PositionsResponse,
)
from ctfledger.config import get_settings
from ctfledger.replay.engine import condition_summary, replay_ledger
from ctfledger.storage.db import get_connection, init_schema
from ctfledger.storage.event_log import log_stats

# Set by run_api() / configure_api() before serving.
_config_profile: str | None = None
_db_path: str | None = None
_source: str | None = None


def configure_api(db_path: str | None = None, source: str | None = None, profile: str | None = None) -> None:
    """Override the database path and engine address (otherwise taken from settings)."""
    global _db_path, _source, _config_profile
    _db_path = db_path
    _source = source
    _config_profile = profile


def _get_conn():
    settings = get_settings(_config_profile)
    conn = get_connection(_db_path or settings.db_path, read_only=False)
    init_schema(conn)
    return conn


def _get_source() -> str:
    return _source or get_settings(_config_profile).ledger_address


app = FastAPI(title="CTF Ledger API", version="0.1.0")


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/events/stats", response_model=EventsStatsResponse)
def events_stats() -> EventsStatsResponse:
    conn = _get_conn()
    try:
        data = log_stats(conn)
        return EventsStatsResponse(**data)
    finally:
        conn.close()


@app.get("/conditions", response_model=ConditionsListResponse)
def conditions_list(
    resolved: bool | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ConditionsListResponse:
    """List replayed conditions, optionally only resolved / unresolved ones."""
    conn = _get_conn()
    try:
        projection = replay_ledger(conn, source=_get_source())
        items = [ConditionResponse(**condition_summary(c)) for c in projection.conditions.values()]
        if resolved is not None:
            items = [c for c in items if c.resolved == resolved]
        return ConditionsListResponse(conditions=items[offset : offset + limit], total=len(items))
    finally:
        conn.close()


@app.get(
    "/conditions/{condition_id}",
    response_model=ConditionResponse,
    responses={404: {"model": ErrorResponse}},
)
def condition_detail(condition_id: str):
    conn = _get_conn()
    try:
        projection = replay_ledger(conn, source=_get_source())
        condition = projection.conditions.get(condition_id.lower())
        if condition is None:
            return _error_json("not_found", f"Condition not prepared or found: {condition_id}")
        return ConditionResponse(**condition_summary(condition))
    finally:
        conn.close()


@app.get(
    "/positions/{owner}",
    response_model=PositionsResponse,
    responses={422: {"model": ErrorResponse}},
)
def positions(owner: str):
    """Non-zero position balances for an owner. uint256 values are returned as strings."""
    conn = _get_conn()
    try:
        projection = replay_ledger(conn, source=_get_source())
        try:
            held = sorted(projection.positions_of(owner).items())
        except ValueError:
            return _error_json("invalid_address", f"Not an address: {owner}", status_code=422)
        return PositionsResponse(
            owner=owner,
            positions=[PositionBalance(position_id=f"0x{pid:064x}", balance=str(bal)) for pid, bal in held],
        )
    finally:
        conn.close()


def run_api(host: str = "127.0.0.1", port: int = 8000, profile: str | None = None) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn

    uvicorn.run("ctfledger.api.main:app", host=host, port=port, reload=False)
