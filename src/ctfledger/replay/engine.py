"""Deterministic replay from the ledger event log - conditions and position balances."""

from __future__ import annotations

from typing import Any

from ctfledger.models.condition import Condition
from ctfledger.models.events import (
    ConditionPreparation,
    ConditionResolution,
    LedgerEvent,
    TransferBatch,
    TransferSingle,
    event_from_payload,
)
from ctfledger.ids.derive import normalize_address
from ctfledger.storage.event_log import stream_events
from ctfledger.tokens.base import ZERO_ADDRESS

_REPLAYED_TYPES = ["ConditionPreparation", "ConditionResolution", "TransferSingle", "TransferBatch"]


class LedgerProjection:
    """Folds engine events into condition records and (owner, position_id) -> balance."""

    def __init__(self) -> None:
        self.conditions: dict[str, Condition] = {}
        self.balances: dict[tuple[str, int], int] = {}
        self.events_applied = 0

    def apply(self, event: LedgerEvent) -> None:
        if isinstance(event, ConditionPreparation):
            self.conditions[event.condition_id] = Condition(
                condition_id=event.condition_id,
                oracle=event.oracle,
                question_id=event.question_id,
                outcome_slot_count=event.outcome_slot_count,
                payout_denominator=event.payout_denominator,
            )
        elif isinstance(event, ConditionResolution):
            condition = self.conditions.get(event.condition_id)
            if condition is not None:
                self.conditions[event.condition_id] = condition.with_payouts(event.payout_numerators)
        elif isinstance(event, TransferSingle):
            self._move(event.from_address, event.to_address, event.token_id, event.value)
        elif isinstance(event, TransferBatch):
            for token_id, value in zip(event.token_ids, event.values):
                self._move(event.from_address, event.to_address, token_id, value)
        else:
            return
        self.events_applied += 1

    def _move(self, from_address: str, to: str, token_id: int, value: int) -> None:
        if from_address != ZERO_ADDRESS:
            self._add(from_address, token_id, -value)
        if to != ZERO_ADDRESS:
            self._add(to, token_id, value)

    def _add(self, owner: str, token_id: int, delta: int) -> None:
        key = (owner, token_id)
        new = self.balances.get(key, 0) + delta
        if new:
            self.balances[key] = new
        else:
            self.balances.pop(key, None)

    def balance_of(self, owner: str, position_id: int) -> int:
        return self.balances.get((normalize_address(owner), position_id), 0)

    def positions_of(self, owner: str) -> dict[int, int]:
        owner = normalize_address(owner)
        return {pid: bal for (o, pid), bal in self.balances.items() if o == owner}

    def inconsistencies(self) -> list[tuple[str, int, int]]:
        """Negative balances indicate a truncated or out-of-order log."""
        return [(o, pid, bal) for (o, pid), bal in self.balances.items() if bal < 0]


def replay_ledger(
    conn: Any,
    source: str | None = None,
) -> LedgerProjection:
    """
    Replay the ledger's events into a fresh projection.
    Deterministic: same log + same params -> same projection.

    source selects the engine (its position ledger shares its address); without it
    every recorded emitter is folded together, which includes multi-token collateral.
    """
    projection = LedgerProjection()
    for payload, _source, _ts in stream_events(
        conn, source=source, event_types=_REPLAYED_TYPES
    ):
        event = event_from_payload(payload)
        if event is not None:
            projection.apply(event)
    return projection


def condition_summary(condition: Condition) -> dict[str, Any]:
    return {
        "condition_id": condition.condition_id,
        "oracle": condition.oracle,
        "question_id": condition.question_id,
        "outcome_slot_count": condition.outcome_slot_count,
        "payout_denominator": condition.payout_denominator,
        "payout_numerators": list(condition.payout_numerators),
        "resolved": condition.resolved,
    }
