"""Ledger event append and query - event sourcing log."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any, Iterator, Protocol

import structlog

from ctfledger.models.events import LedgerEvent

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

EventRow = tuple[str, str, str | None, int, str]

_INSERT_SQL = """
    INSERT INTO ledger_events (source, event_type, condition_id, recorded_ts, payload)
    VALUES (?, ?, ?, ?, ?)
"""


class EventEmitter(Protocol):
    address: str

    def subscribe(self, listener: Any) -> None: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


def prepare_event_row(event: LedgerEvent, source: str, recorded_ts: int | None = None) -> EventRow:
    """Build a ledger_events row: (source, event_type, condition_id, recorded_ts, payload_json)."""
    payload = event.model_dump(mode="json")
    return (
        source,
        event.event_type,
        getattr(event, "condition_id", None),
        recorded_ts if recorded_ts is not None else _now_ms(),
        json.dumps(payload),
    )


def append_event(
    conn: DuckDBPyConnection,
    event: LedgerEvent,
    source: str,
    recorded_ts: int | None = None,
) -> None:
    """Append a single event. Prefer append_events_batch for throughput."""
    conn.execute(_INSERT_SQL, list(prepare_event_row(event, source, recorded_ts)))


def append_events_batch(conn: DuckDBPyConnection, rows: list[EventRow]) -> None:
    """Append multiple events. Each row as built by prepare_event_row."""
    if not rows:
        return
    conn.executemany(_INSERT_SQL, rows)


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, min/max recorded_ts, counts by type and by condition."""
    total = conn.execute("SELECT COUNT(*) FROM ledger_events").fetchone()[0]
    range_row = conn.execute("SELECT MIN(recorded_ts), MAX(recorded_ts) FROM ledger_events").fetchone()
    by_type = conn.execute(
        "SELECT event_type, COUNT(*) AS cnt FROM ledger_events GROUP BY event_type ORDER BY cnt DESC, event_type"
    ).fetchall()
    by_condition = conn.execute(
        """
        SELECT condition_id, COUNT(*) AS cnt FROM ledger_events
        WHERE condition_id IS NOT NULL
        GROUP BY condition_id ORDER BY cnt DESC LIMIT 20
        """
    ).fetchall()
    return {
        "total_events": total,
        "min_recorded_ts": range_row[0],
        "max_recorded_ts": range_row[1],
        "by_type": [{"event_type": r[0], "count": r[1]} for r in by_type],
        "by_condition": [{"condition_id": r[0], "count": r[1]} for r in by_condition],
    }


def stream_events(
    conn: Any,
    source: str | None = None,
    condition_id: str | None = None,
    event_types: list[str] | None = None,
) -> Iterator[tuple[dict[str, Any], str, int]]:
    """Yield (payload, source, recorded_ts) in append order, optionally filtered."""
    conditions = []
    params: list[Any] = []
    if source:
        conditions.append("LOWER(source) = ?")
        params.append(source.lower())
    if condition_id:
        conditions.append("condition_id = ?")
        params.append(condition_id.lower())
    if event_types:
        conditions.append(f"event_type IN ({', '.join('?' for _ in event_types)})")
        params.extend(event_types)
    where = " AND ".join(conditions) if conditions else "1=1"
    sql = f"SELECT payload, source, recorded_ts FROM ledger_events WHERE {where} ORDER BY id ASC"
    for payload_json, row_source, recorded_ts in conn.execute(sql, params).fetchall():
        try:
            payload = json.loads(payload_json)
        except (TypeError, json.JSONDecodeError):
            log.warning("event_payload_unreadable", source=row_source, recorded_ts=recorded_ts)
            continue
        yield (payload, row_source, recorded_ts)


class EventRecorder:
    """Buffers events from one or more emitters and appends them to ledger_events in batches."""

    def __init__(self, conn: DuckDBPyConnection, batch_size: int = 100) -> None:
        self.conn = conn
        self.batch_size = max(1, batch_size)
        self._rows: list[EventRow] = []
        self.recorded = 0

    def attach(self, emitter: EventEmitter) -> None:
        source = emitter.address

        def _on_event(event: LedgerEvent) -> None:
            self.record(event, source)

        emitter.subscribe(_on_event)

    def record(self, event: LedgerEvent, source: str) -> None:
        self._rows.append(prepare_event_row(event, source))
        if len(self._rows) >= self.batch_size:
            self.flush()

    def flush(self) -> int:
        rows, self._rows = self._rows, []
        append_events_batch(self.conn, rows)
        self.recorded += len(rows)
        if rows:
            log.debug("events_flushed", count=len(rows))
        return len(rows)

    def __enter__(self) -> EventRecorder:
        return self

    def __exit__(self, *exc: object) -> None:
        self.flush()
