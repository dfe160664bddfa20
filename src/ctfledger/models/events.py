"""Events emitted by the engine and its token books.

Field names follow the ledger's Python naming; amounts are exact ints (uint256).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class LedgerEvent(BaseModel):
    event_type: str


class ConditionPreparation(LedgerEvent):
    event_type: Literal["ConditionPreparation"] = "ConditionPreparation"
    condition_id: str
    oracle: str
    question_id: str
    payout_denominator: int
    outcome_slot_count: int


class ConditionResolution(LedgerEvent):
    event_type: Literal["ConditionResolution"] = "ConditionResolution"
    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int
    payout_denominator: int
    payout_numerators: list[int]


class PositionSplit(LedgerEvent):
    event_type: Literal["PositionSplit"] = "PositionSplit"
    stakeholder: str
    collateral_token: str
    collateral_token_id: int | None = None
    parent_collection_id: str
    condition_id: str
    partition: list[int]
    amount: int


class PositionsMerge(LedgerEvent):
    event_type: Literal["PositionsMerge"] = "PositionsMerge"
    stakeholder: str
    collateral_token: str
    collateral_token_id: int | None = None
    parent_collection_id: str
    condition_id: str
    partition: list[int]
    amount: int


class PayoutRedemption(LedgerEvent):
    event_type: Literal["PayoutRedemption"] = "PayoutRedemption"
    redeemer: str
    collateral_token: str
    collateral_token_id: int | None = None
    parent_collection_id: str
    condition_id: str
    index_sets: list[int]
    payout: int


class TransferSingle(LedgerEvent):
    """Multi-token transfer; from_address is the zero address on mint, to_address on burn."""

    event_type: Literal["TransferSingle"] = "TransferSingle"
    operator: str
    from_address: str
    to_address: str
    token_id: int
    value: int


class TransferBatch(LedgerEvent):
    event_type: Literal["TransferBatch"] = "TransferBatch"
    operator: str
    from_address: str
    to_address: str
    token_ids: list[int]
    values: list[int]


class ApprovalForAll(LedgerEvent):
    event_type: Literal["ApprovalForAll"] = "ApprovalForAll"
    owner: str
    operator: str
    approved: bool


class Transfer(LedgerEvent):
    """Fungible token transfer."""

    event_type: Literal["Transfer"] = "Transfer"
    from_address: str
    to_address: str
    value: int


class Approval(LedgerEvent):
    event_type: Literal["Approval"] = "Approval"
    owner: str
    spender: str
    value: int = Field(..., ge=0)


_EVENT_TYPES: dict[str, type[LedgerEvent]] = {
    cls.model_fields["event_type"].default: cls
    for cls in (
        ConditionPreparation,
        ConditionResolution,
        PositionSplit,
        PositionsMerge,
        PayoutRedemption,
        TransferSingle,
        TransferBatch,
        ApprovalForAll,
        Transfer,
        Approval,
    )
}


def event_from_payload(payload: dict[str, Any]) -> LedgerEvent | None:
    """Rebuild a typed event from its stored JSON payload. Unknown types return None."""
    cls = _EVENT_TYPES.get(str(payload.get("event_type")))
    if cls is None:
        return None
    return cls.model_validate(payload)
