"""Condition registry - prepared conditions keyed by derived condition id."""

from __future__ import annotations

from typing import Iterator

import structlog

from ctfledger.errors import (
    ConditionAlreadyPrepared,
    ConditionNotFound,
    InvalidOutcomeSlotCount,
    InvalidPayoutDenominator,
    OutcomeIndexOutOfRange,
)
from ctfledger.ids.derive import get_condition_id, normalize_address, normalize_bytes32
from ctfledger.models.condition import Condition

log = structlog.get_logger(__name__)


class ConditionRegistry:
    """Append-only store of conditions. The only later mutation is resolution."""

    def __init__(self) -> None:
        self._conditions: dict[str, Condition] = {}

    def prepare(
        self,
        oracle: str,
        question_id: str | bytes,
        payout_denominator: int,
        outcome_slot_count: int,
    ) -> Condition:
        if isinstance(outcome_slot_count, bool) or not isinstance(outcome_slot_count, int) or outcome_slot_count < 2:
            raise InvalidOutcomeSlotCount(outcome_slot_count)
        if isinstance(payout_denominator, bool) or not isinstance(payout_denominator, int) or payout_denominator <= 0:
            raise InvalidPayoutDenominator(payout_denominator)
        condition_id = get_condition_id(oracle, question_id, payout_denominator, outcome_slot_count)
        if condition_id in self._conditions:
            raise ConditionAlreadyPrepared(condition_id)
        condition = Condition(
            condition_id=condition_id,
            oracle=normalize_address(oracle),
            question_id=normalize_bytes32(question_id),
            outcome_slot_count=outcome_slot_count,
            payout_denominator=payout_denominator,
        )
        self._conditions[condition_id] = condition
        log.info(
            "condition_prepared",
            condition_id=condition_id,
            oracle=oracle,
            outcome_slot_count=outcome_slot_count,
            payout_denominator=payout_denominator,
        )
        return condition

    def get(self, condition_id: str | bytes) -> Condition | None:
        """Look up by id in any accepted form (0x-hex in any case, bare hex, 32 raw bytes)."""
        try:
            key = normalize_bytes32(condition_id)
        except ValueError:
            return None
        return self._conditions.get(key)

    def require(self, condition_id: str | bytes) -> Condition:
        condition = self.get(condition_id)
        if condition is None:
            raise ConditionNotFound(condition_id)
        return condition

    def mark_resolved(self, condition_id: str, payout_numerators: list[int]) -> Condition:
        """Store payout numerators. Callers validate; see resolution.report_payouts."""
        condition = self.require(condition_id).with_payouts(payout_numerators)
        self._conditions[condition.condition_id] = condition
        return condition

    # Read accessors: 0 for unknown conditions
    def outcome_slot_count(self, condition_id: str) -> int:
        condition = self.get(condition_id)
        return condition.outcome_slot_count if condition else 0

    def payout_denominator(self, condition_id: str) -> int:
        condition = self.get(condition_id)
        return condition.payout_denominator if condition else 0

    def payout_numerator(self, condition_id: str, index: int) -> int:
        condition = self.get(condition_id)
        if condition is None:
            return 0
        if not 0 <= index < condition.outcome_slot_count:
            raise OutcomeIndexOutOfRange(index, condition.outcome_slot_count)
        if not condition.resolved:
            return 0
        return condition.payout_numerators[index]

    def conditions(self) -> list[Condition]:
        return list(self._conditions.values())

    def __contains__(self, condition_id: object) -> bool:
        return isinstance(condition_id, (str, bytes)) and self.get(condition_id) is not None

    def __iter__(self) -> Iterator[Condition]:
        return iter(list(self._conditions.values()))

    def __len__(self) -> int:
        return len(self._conditions)
