"""
Conditional tokens engine.

ConditionalTokens escrows collateral, splits it into outcome positions on a
multi-token ledger, merges positions back, and pays out resolved positions in
proportion to the oracle's report. Every mutating operation is atomic: the
position ledger and the collateral book(s) it touches are restored on any
failure, and events are delivered only after success.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import ExitStack, contextmanager
from functools import partial
from typing import Iterator, Sequence

import structlog
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from ctfledger.conditions.partition import full_index_set, validate_index_sets, validate_partition
from ctfledger.conditions.registry import ConditionRegistry
from ctfledger.conditions.resolution import report_payouts
from ctfledger.engine.payouts import index_set_numerator, payout_for_stake
from ctfledger.errors import (
    ConditionNotResolved,
    IncompletePartition,
    InvalidTransferData,
    LedgerError,
)
from ctfledger.ids.derive import (
    ROOT_COLLECTION_ID,
    get_condition_id,
    get_nested_collection_id,
    get_position_id,
    is_root_collection,
    normalize_bytes32,
    to_bytes32,
)
from ctfledger.models.events import (
    ConditionPreparation,
    ConditionResolution,
    LedgerEvent,
    PayoutRedemption,
    PositionSplit,
    PositionsMerge,
)
from ctfledger.tokens.base import BalanceBook, EventListener, canonical_address, check_amount
from ctfledger.tokens.fungible import FungibleToken
from ctfledger.tokens.multi import MultiToken

log = structlog.get_logger(__name__)

SPLIT_DATA_TYPES = ["bytes32", "uint256[]"]


def encode_split_data(condition_id: str | bytes, partition: Sequence[int]) -> bytes:
    """Payload for a direct multi-token deposit that should be split on receipt."""
    return encode(SPLIT_DATA_TYPES, [to_bytes32(condition_id), list(partition)])


def decode_split_data(data: bytes) -> tuple[str, list[int]]:
    try:
        raw_condition_id, partition = decode(SPLIT_DATA_TYPES, data)
    except (DecodingError, TypeError) as e:
        raise InvalidTransferData(f"cannot decode split parameters from {len(data or b'')} bytes") from e
    return normalize_bytes32(raw_condition_id), list(partition)


class _Collateral(ABC):
    """Which book backs a position and how the engine moves it in and out of escrow."""

    prefunded = False

    def __init__(self, book: BalanceBook, token_id: int | None = None) -> None:
        self.book = book
        self.token_id = token_id

    @property
    def address(self) -> str:
        return self.book.address

    def position_id(self, collection_id: str) -> int:
        return get_position_id(self.book.address, collection_id, self.token_id)

    @abstractmethod
    def pull(self, escrow: str, from_address: str, amount: int) -> None:
        """Move amount from from_address into escrow."""

    @abstractmethod
    def push(self, escrow: str, to: str, amount: int) -> None:
        """Release amount from escrow to to."""


class _FungibleCollateral(_Collateral):
    book: FungibleToken

    def pull(self, escrow: str, from_address: str, amount: int) -> None:
        self.book.transfer_from(escrow, from_address, escrow, amount)

    def push(self, escrow: str, to: str, amount: int) -> None:
        self.book.transfer(escrow, to, amount)


class _MultiCollateral(_Collateral):
    book: MultiToken

    def __init__(self, book: MultiToken, token_id: int, prefunded: bool = False) -> None:
        super().__init__(book, token_id)
        self.prefunded = prefunded

    def pull(self, escrow: str, from_address: str, amount: int) -> None:
        if self.prefunded:
            return
        self.book.safe_transfer_from(escrow, from_address, escrow, self.token_id, amount)

    def push(self, escrow: str, to: str, amount: int) -> None:
        self.book.safe_transfer_from(escrow, escrow, to, self.token_id, amount)


class ConditionalTokens:
    """Condition/position accounting engine. Not thread-safe: one instance per serialized caller."""

    def __init__(
        self,
        address: str,
        registry: ConditionRegistry | None = None,
        positions: MultiToken | None = None,
    ) -> None:
        self.address = canonical_address(address)
        self.registry = registry if registry is not None else ConditionRegistry()
        self.positions = positions if positions is not None else MultiToken(address, name="positions")
        self._listeners: list[EventListener] = []
        self._pending: list[LedgerEvent] = []
        self._depth = 0

    # --- events ---
    def subscribe(self, listener: EventListener) -> None:
        """Receive engine events and the position ledger's transfer events."""
        self._listeners.append(listener)
        self.positions.subscribe(listener)

    def _emit(self, event: LedgerEvent) -> None:
        if self._depth:
            self._pending.append(event)
        else:
            self._deliver_all([event])

    def _deliver_all(self, events: list[LedgerEvent]) -> None:
        for event in events:
            for listener in list(self._listeners):
                listener(event)

    @contextmanager
    def _atomic(self, operation: str, *books: BalanceBook) -> Iterator[None]:
        """
        Run one operation over the position ledger and the given collateral books.

        When a collateral book is already mid-transfer (a deposit hook), all events
        wait for that transfer to commit, so its own transfer event goes out first.
        """
        outer = next((book for book in books if book.in_transaction), None)
        mark = len(self._pending)
        self._depth += 1
        try:
            with ExitStack() as stack:
                seen: set[int] = set()
                for book in (self.positions, *books):
                    if id(book) not in seen:
                        seen.add(id(book))
                        stack.enter_context(book.atomic(deliver_after=outer))
                yield
        except LedgerError as e:
            del self._pending[mark:]
            log.warning("operation_failed", operation=operation, error=str(e), error_type=type(e).__name__)
            raise
        except BaseException:
            del self._pending[mark:]
            raise
        finally:
            self._depth -= 1
        if self._depth == 0:
            pending, self._pending = self._pending, []
            if outer is not None and outer.in_transaction:
                outer.after_commit(partial(self._deliver_all, pending))
            else:
                self._deliver_all(pending)

    # --- conditions ---
    def prepare_condition(
        self,
        oracle: str,
        question_id: str | bytes,
        payout_denominator: int,
        outcome_slot_count: int,
    ) -> str:
        condition = self.registry.prepare(oracle, question_id, payout_denominator, outcome_slot_count)
        self._emit(
            ConditionPreparation(
                condition_id=condition.condition_id,
                oracle=condition.oracle,
                question_id=condition.question_id,
                payout_denominator=condition.payout_denominator,
                outcome_slot_count=condition.outcome_slot_count,
            )
        )
        return condition.condition_id

    def report_payouts(
        self,
        oracle: str,
        question_id: str | bytes,
        payout_denominator: int,
        payout_numerators: Sequence[int],
    ) -> str:
        """Called by the oracle; the caller's address is part of the condition id."""
        try:
            condition = report_payouts(self.registry, oracle, question_id, payout_denominator, payout_numerators)
        except LedgerError as e:
            log.warning("operation_failed", operation="report_payouts", error=str(e), error_type=type(e).__name__)
            raise
        self._emit(
            ConditionResolution(
                condition_id=condition.condition_id,
                oracle=condition.oracle,
                question_id=condition.question_id,
                outcome_slot_count=condition.outcome_slot_count,
                payout_denominator=condition.payout_denominator,
                payout_numerators=list(condition.payout_numerators),
            )
        )
        return condition.condition_id

    # --- read-only queries ---
    def get_outcome_slot_count(self, condition_id: str) -> int:
        return self.registry.outcome_slot_count(condition_id)

    def payout_denominator(self, condition_id: str) -> int:
        return self.registry.payout_denominator(condition_id)

    def payout_numerators(self, condition_id: str, index: int) -> int:
        return self.registry.payout_numerator(condition_id, index)

    def balance_of(self, owner: str, position_id: int) -> int:
        return self.positions.balance_of(owner, position_id)

    @staticmethod
    def get_condition_id(oracle: str, question_id: str | bytes, payout_denominator: int, outcome_slot_count: int) -> str:
        return get_condition_id(oracle, question_id, payout_denominator, outcome_slot_count)

    @staticmethod
    def get_collection_id(parent_collection_id: str | bytes, condition_id: str | bytes, index_set: int) -> str:
        return get_nested_collection_id(parent_collection_id, condition_id, index_set)

    @staticmethod
    def get_position_id(collateral_token: str, collection_id: str | bytes, token_id: int | None = None) -> int:
        return get_position_id(collateral_token, collection_id, token_id)

    # --- fungible collateral ---
    def split_position(
        self,
        stakeholder: str,
        collateral_token: FungibleToken,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        self._split(stakeholder, _FungibleCollateral(collateral_token), parent_collection_id, condition_id, partition, amount)

    def merge_positions(
        self,
        stakeholder: str,
        collateral_token: FungibleToken,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        self._merge(stakeholder, _FungibleCollateral(collateral_token), parent_collection_id, condition_id, partition, amount)

    def redeem_positions(
        self,
        redeemer: str,
        collateral_token: FungibleToken,
        parent_collection_id: str | bytes,
        condition_id: str,
        index_sets: Sequence[int],
    ) -> int:
        return self._redeem(redeemer, _FungibleCollateral(collateral_token), parent_collection_id, condition_id, index_sets)

    # --- multi-token collateral ---
    def split_1155_position(
        self,
        stakeholder: str,
        collateral_token: MultiToken,
        collateral_token_id: int,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        collateral = _MultiCollateral(collateral_token, collateral_token_id)
        self._split(stakeholder, collateral, parent_collection_id, condition_id, partition, amount)

    def merge_1155_positions(
        self,
        stakeholder: str,
        collateral_token: MultiToken,
        collateral_token_id: int,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        collateral = _MultiCollateral(collateral_token, collateral_token_id)
        self._merge(stakeholder, collateral, parent_collection_id, condition_id, partition, amount)

    def redeem_1155_positions(
        self,
        redeemer: str,
        collateral_token: MultiToken,
        collateral_token_id: int,
        parent_collection_id: str | bytes,
        condition_id: str,
        index_sets: Sequence[int],
    ) -> int:
        collateral = _MultiCollateral(collateral_token, collateral_token_id)
        return self._redeem(redeemer, collateral, parent_collection_id, condition_id, index_sets)

    # --- direct deposits ---
    def enable_direct_deposits(self, collateral_token: MultiToken) -> None:
        """Split multi-token collateral sent straight to the engine with encode_split_data() payloads."""
        collateral_token.register_receiver(self.address, self)

    def on_erc1155_received(
        self,
        token: MultiToken,
        operator: str,
        from_address: str,
        token_id: int,
        value: int,
        data: bytes,
    ) -> None:
        if operator == self.address:
            # collateral pulled by split_1155_position itself
            return
        condition_id, partition = decode_split_data(data)
        collateral = _MultiCollateral(token, token_id, prefunded=True)
        self._split(from_address, collateral, ROOT_COLLECTION_ID, condition_id, partition, value)

    def on_erc1155_batch_received(
        self,
        token: MultiToken,
        operator: str,
        from_address: str,
        token_ids: list[int],
        values: list[int],
        data: bytes,
    ) -> None:
        if operator == self.address:
            return
        condition_id, partition = decode_split_data(data)
        with self._atomic("deposit_split", token):
            for token_id, value in zip(token_ids, values):
                collateral = _MultiCollateral(token, token_id, prefunded=True)
                self._split(from_address, collateral, ROOT_COLLECTION_ID, condition_id, partition, value)

    # --- transitions ---
    def _split(
        self,
        stakeholder: str,
        collateral: _Collateral,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        check_amount(amount)
        stakeholder = canonical_address(stakeholder)
        parent = normalize_bytes32(parent_collection_id)
        partition = list(partition)
        condition = self.registry.require(condition_id)
        union = validate_partition(partition, condition.outcome_slot_count)
        full = union == full_index_set(condition.outcome_slot_count)
        if collateral.prefunded and not full:
            raise IncompletePartition(f"deposit split must cover all {condition.outcome_slot_count} outcome slots")
        cid = condition.condition_id

        with self._atomic("split", collateral.book):
            if not full:
                source = collateral.position_id(get_nested_collection_id(parent, cid, union))
                self.positions.burn(stakeholder, source, amount, operator=stakeholder)
            elif is_root_collection(parent):
                collateral.pull(self.address, stakeholder, amount)
            else:
                self.positions.burn(stakeholder, collateral.position_id(parent), amount, operator=stakeholder)
            position_ids = [collateral.position_id(get_nested_collection_id(parent, cid, s)) for s in partition]
            self.positions.mint_batch(stakeholder, position_ids, [amount] * len(position_ids), operator=stakeholder)
            self._emit(
                PositionSplit(
                    stakeholder=stakeholder,
                    collateral_token=collateral.address,
                    collateral_token_id=collateral.token_id,
                    parent_collection_id=parent,
                    condition_id=cid,
                    partition=partition,
                    amount=amount,
                )
            )
        log.debug("position_split", stakeholder=stakeholder, condition_id=cid, partition=partition, amount=amount)

    def _merge(
        self,
        stakeholder: str,
        collateral: _Collateral,
        parent_collection_id: str | bytes,
        condition_id: str,
        partition: Sequence[int],
        amount: int,
    ) -> None:
        check_amount(amount)
        stakeholder = canonical_address(stakeholder)
        parent = normalize_bytes32(parent_collection_id)
        partition = list(partition)
        condition = self.registry.require(condition_id)
        union = validate_partition(partition, condition.outcome_slot_count)
        full = union == full_index_set(condition.outcome_slot_count)
        cid = condition.condition_id

        with self._atomic("merge", collateral.book):
            position_ids = [collateral.position_id(get_nested_collection_id(parent, cid, s)) for s in partition]
            self.positions.burn_batch(stakeholder, position_ids, [amount] * len(position_ids), operator=stakeholder)
            if not full:
                target = collateral.position_id(get_nested_collection_id(parent, cid, union))
                self.positions.mint(stakeholder, target, amount, operator=stakeholder)
            elif is_root_collection(parent):
                collateral.push(self.address, stakeholder, amount)
            else:
                self.positions.mint(stakeholder, collateral.position_id(parent), amount, operator=stakeholder)
            self._emit(
                PositionsMerge(
                    stakeholder=stakeholder,
                    collateral_token=collateral.address,
                    collateral_token_id=collateral.token_id,
                    parent_collection_id=parent,
                    condition_id=cid,
                    partition=partition,
                    amount=amount,
                )
            )
        log.debug("positions_merged", stakeholder=stakeholder, condition_id=cid, partition=partition, amount=amount)

    def _redeem(
        self,
        redeemer: str,
        collateral: _Collateral,
        parent_collection_id: str | bytes,
        condition_id: str,
        index_sets: Sequence[int],
    ) -> int:
        redeemer = canonical_address(redeemer)
        parent = normalize_bytes32(parent_collection_id)
        index_sets = list(index_sets)
        condition = self.registry.require(condition_id)
        if not condition.resolved:
            raise ConditionNotResolved(condition.condition_id)
        validate_index_sets(index_sets, condition.outcome_slot_count)
        cid = condition.condition_id

        total_payout = 0
        with self._atomic("redeem", collateral.book):
            for index_set in index_sets:
                position_id = collateral.position_id(get_nested_collection_id(parent, cid, index_set))
                stake = self.positions.balance_of(redeemer, position_id)
                if stake == 0:
                    continue
                numerator = index_set_numerator(condition.payout_numerators, index_set)
                total_payout += payout_for_stake(stake, numerator, condition.payout_denominator)
                self.positions.burn(redeemer, position_id, stake, operator=redeemer)
            if total_payout > 0:
                if is_root_collection(parent):
                    collateral.push(self.address, redeemer, total_payout)
                else:
                    self.positions.mint(redeemer, collateral.position_id(parent), total_payout, operator=redeemer)
            self._emit(
                PayoutRedemption(
                    redeemer=redeemer,
                    collateral_token=collateral.address,
                    collateral_token_id=collateral.token_id,
                    parent_collection_id=parent,
                    condition_id=cid,
                    index_sets=index_sets,
                    payout=total_payout,
                )
            )
        log.debug("payout_redeemed", redeemer=redeemer, condition_id=cid, payout=total_payout)
        return total_payout
