"""Oracle payout reports: validation and the one-time unresolved -> resolved transition."""

from __future__ import annotations

from typing import Sequence

import structlog

from ctfledger.conditions.registry import ConditionRegistry
from ctfledger.errors import (
    AlreadyResolved,
    ConditionNotFound,
    InvalidOutcomeSlotCount,
    InvalidPayoutNumerator,
    PayoutAllZero,
    PayoutExceedsDenominator,
)
from ctfledger.ids.derive import get_condition_id
from ctfledger.models.condition import Condition

log = structlog.get_logger(__name__)


def validate_payouts(payout_numerators: Sequence[int], payout_denominator: int) -> None:
    """Numerators are non-negative ints, not all zero, summing to at most the denominator."""
    for value in payout_numerators:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidPayoutNumerator(f"payout numerator must be a non-negative int, got {value!r}")
    total = sum(payout_numerators)
    if total == 0:
        raise PayoutAllZero()
    if total > payout_denominator:
        raise PayoutExceedsDenominator(total, payout_denominator)


def report_payouts(
    registry: ConditionRegistry,
    oracle: str,
    question_id: str | bytes,
    payout_denominator: int,
    payout_numerators: Sequence[int],
) -> Condition:
    """
    Resolve the condition identified by (oracle, question_id, payout_denominator,
    len(payout_numerators)). The reporting caller is the oracle, so a wrong
    oracle, question, denominator or slot count all surface as ConditionNotFound.
    """
    numerators = list(payout_numerators)
    if len(numerators) < 2:
        raise InvalidOutcomeSlotCount(len(numerators))
    try:
        condition_id = get_condition_id(oracle, question_id, payout_denominator, len(numerators))
    except ValueError as e:
        log.warning("report_unresolvable", oracle=oracle, error=str(e))
        raise ConditionNotFound(f"{oracle}/{question_id!r}/{payout_denominator}") from e
    condition = registry.get(condition_id)
    if condition is None:
        raise ConditionNotFound(condition_id)
    if condition.resolved:
        raise AlreadyResolved(condition_id)
    validate_payouts(numerators, condition.payout_denominator)
    resolved = registry.mark_resolved(condition_id, numerators)
    log.info("condition_resolved", condition_id=condition_id, oracle=oracle, payout_numerators=numerators)
    return resolved
