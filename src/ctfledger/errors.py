"""Ledger error taxonomy.

Validation errors subclass ValueError, lookups subclass LookupError, so callers
can catch either the precise class or the builtin family.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error raised by the ledger and its token books."""


class InvalidInput(LedgerError, ValueError):
    """Rejected before any state change."""


class InvalidOutcomeSlotCount(InvalidInput):
    def __init__(self, outcome_slot_count: int) -> None:
        super().__init__(f"there should be more than one outcome slot (got {outcome_slot_count})")
        self.outcome_slot_count = outcome_slot_count


class InvalidPayoutDenominator(InvalidInput):
    def __init__(self, payout_denominator: int) -> None:
        super().__init__(f"payout denominator invalid: {payout_denominator}")
        self.payout_denominator = payout_denominator


class EmptyPartition(InvalidInput):
    def __init__(self, size: int) -> None:
        super().__init__(f"got empty or singleton partition (size {size})")
        self.size = size


class IndexSetOutOfRange(InvalidInput):
    def __init__(self, index_set: object, outcome_slot_count: int) -> None:
        super().__init__(f"got invalid index set {index_set!r} for {outcome_slot_count} outcome slots")
        self.index_set = index_set
        self.outcome_slot_count = outcome_slot_count


class IndexSetsNotDisjoint(InvalidInput):
    def __init__(self, index_set: int) -> None:
        super().__init__(f"partition not disjoint at index set {index_set:#b}")
        self.index_set = index_set


class IncompletePartition(InvalidInput):
    """Partition must cover every outcome slot for this kind of split."""


class OutcomeIndexOutOfRange(InvalidInput, IndexError):
    def __init__(self, index: int, outcome_slot_count: int) -> None:
        super().__init__(f"outcome index {index} out of range for {outcome_slot_count} slots")
        self.index = index


class PayoutAllZero(InvalidInput):
    def __init__(self) -> None:
        super().__init__("payout is all zeroes")


class PayoutExceedsDenominator(InvalidInput):
    def __init__(self, total: int, payout_denominator: int) -> None:
        super().__init__(f"payouts can't exceed denominator ({total} > {payout_denominator})")
        self.total = total
        self.payout_denominator = payout_denominator


class InvalidPayoutNumerator(InvalidInput):
    pass


class InvalidAmount(InvalidInput):
    pass


class InvalidTransferData(InvalidInput):
    """Incoming transfer payload could not be decoded into split parameters."""


class InvalidAddress(InvalidInput):
    def __init__(self, address: object) -> None:
        super().__init__(f"not an address: {address!r}")
        self.address = address


class ConditionNotFound(LedgerError, LookupError):
    def __init__(self, condition_id: str) -> None:
        super().__init__(f"condition not prepared or found: {condition_id}")
        self.condition_id = condition_id


class ConditionAlreadyPrepared(LedgerError):
    def __init__(self, condition_id: str) -> None:
        super().__init__(f"condition already prepared: {condition_id}")
        self.condition_id = condition_id


class AlreadyResolved(LedgerError):
    def __init__(self, condition_id: str) -> None:
        super().__init__(f"payout already reported for condition {condition_id}")
        self.condition_id = condition_id


class ConditionNotResolved(LedgerError):
    def __init__(self, condition_id: str) -> None:
        super().__init__(f"result for condition not received yet: {condition_id}")
        self.condition_id = condition_id


class TokenError(LedgerError):
    """Raised by balance books (positions and collateral)."""


class InsufficientBalance(TokenError):
    def __init__(self, owner: str, token_id: object, balance: int, amount: int) -> None:
        super().__init__(f"insufficient balance for {owner} on {token_id}: {balance} < {amount}")
        self.owner = owner
        self.token_id = token_id
        self.balance = balance
        self.amount = amount


class InsufficientAllowance(TokenError):
    def __init__(self, owner: str, spender: str, allowance: int, amount: int) -> None:
        super().__init__(f"insufficient allowance from {owner} to {spender}: {allowance} < {amount}")
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.amount = amount


class NotApproved(TokenError):
    def __init__(self, owner: str, operator: str) -> None:
        super().__init__(f"{operator} is not owner nor approved for {owner}")
        self.owner = owner
        self.operator = operator


class InvalidRecipient(TokenError):
    pass
