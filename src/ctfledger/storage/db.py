"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Sequence for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS ledger_event_seq START 1;

-- Ledger event log (append-only, event sourcing). source = emitting contract/book address
CREATE TABLE IF NOT EXISTS ledger_events (
    id              BIGINT PRIMARY KEY DEFAULT nextval('ledger_event_seq'),
    source          VARCHAR NOT NULL,
    event_type      VARCHAR NOT NULL,
    condition_id    VARCHAR,
    recorded_ts     BIGINT NOT NULL,
    payload         VARCHAR NOT NULL  -- JSON text: uint256 values overflow the JSON type
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use read_only=True when another process may be writing the event log."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
