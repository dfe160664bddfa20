"""Canonical schema (Pydantic) - Condition and ledger events."""

from ctfledger.models.condition import Condition
from ctfledger.models.events import (
    Approval,
    ApprovalForAll,
    ConditionPreparation,
    ConditionResolution,
    LedgerEvent,
    PayoutRedemption,
    PositionSplit,
    PositionsMerge,
    Transfer,
    TransferBatch,
    TransferSingle,
    event_from_payload,
)

__all__ = [
    "Condition",
    "LedgerEvent",
    "ConditionPreparation",
    "ConditionResolution",
    "PositionSplit",
    "PositionsMerge",
    "PayoutRedemption",
    "TransferSingle",
    "TransferBatch",
    "ApprovalForAll",
    "Transfer",
    "Approval",
    "event_from_payload",
]
