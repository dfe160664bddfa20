"""Proportional payout arithmetic for resolved conditions."""

from __future__ import annotations

from typing import Sequence


def index_set_numerator(payout_numerators: Sequence[int], index_set: int) -> int:
    """Sum of payout numerators for the slots set in index_set."""
    return sum(n for i, n in enumerate(payout_numerators) if (index_set >> i) & 1)


def payout_for_stake(stake: int, numerator: int, payout_denominator: int) -> int:
    """Collateral owed for a stake, floored."""
    return stake * numerator // payout_denominator
