"""Condition - a question with a fixed number of outcome slots and one oracle."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Condition(BaseModel):
    """Prepared condition. Immutable; resolution replaces the record with a resolved copy."""

    model_config = ConfigDict(frozen=True)

    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int = Field(..., ge=2)
    payout_denominator: int = Field(..., gt=0)
    payout_numerators: tuple[int, ...] = ()

    @property
    def resolved(self) -> bool:
        return len(self.payout_numerators) > 0

    def with_payouts(self, payout_numerators: list[int] | tuple[int, ...]) -> Condition:
        return self.model_copy(update={"payout_numerators": tuple(payout_numerators)})
