"""Multi-token ledger (ERC-1155 semantics) addressed by (owner, token id).

Used both as the position ledger of the engine and as a multi-asset collateral.
"""

from __future__ import annotations

from typing import Protocol, Sequence

import structlog

from ctfledger.errors import InvalidAmount, InvalidRecipient, NotApproved
from ctfledger.models.events import ApprovalForAll, TransferBatch, TransferSingle
from ctfledger.tokens.base import ZERO_ADDRESS, BalanceBook, canonical_address, check_amount

log = structlog.get_logger(__name__)


class MultiTokenReceiver(Protocol):
    """Hook invoked when a safe transfer lands on a registered address. Raising aborts the transfer."""

    def on_erc1155_received(
        self, token: MultiToken, operator: str, from_address: str, token_id: int, value: int, data: bytes
    ) -> None: ...

    def on_erc1155_batch_received(
        self,
        token: MultiToken,
        operator: str,
        from_address: str,
        token_ids: list[int],
        values: list[int],
        data: bytes,
    ) -> None: ...


def _check_batch(token_ids: Sequence[int], amounts: Sequence[int]) -> None:
    if len(token_ids) != len(amounts):
        raise InvalidAmount(f"ids and amounts length mismatch ({len(token_ids)} != {len(amounts)})")
    for amount in amounts:
        check_amount(amount)


class MultiToken(BalanceBook):
    """In-memory multi-token book. Mint/burn are unrestricted; the owning engine gates them."""

    def __init__(self, address: str, name: str = "") -> None:
        super().__init__(address, name)
        self._operators: dict[tuple[str, str], bool] = {}
        self._receivers: dict[str, MultiTokenReceiver] = {}

    # --- reads ---
    def balance_of(self, owner: str, token_id: int) -> int:
        return self._balance(canonical_address(owner), token_id)

    def balance_of_batch(self, owners: Sequence[str], token_ids: Sequence[int]) -> list[int]:
        if len(owners) != len(token_ids):
            raise InvalidAmount("owners and ids length mismatch")
        return [self._balance(canonical_address(o), t) for o, t in zip(owners, token_ids)]

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._operators.get((canonical_address(owner), canonical_address(operator)), False)

    # --- approvals / receivers ---
    def set_approval_for_all(self, owner: str, operator: str, approved: bool) -> None:
        owner, operator = canonical_address(owner), canonical_address(operator)
        self._write(self._operators, (owner, operator), approved)
        self._emit(ApprovalForAll(owner=owner, operator=operator, approved=approved))

    def register_receiver(self, address: str, receiver: MultiTokenReceiver) -> None:
        self._receivers[canonical_address(address)] = receiver

    # --- mint / burn ---
    def mint(self, to: str, token_id: int, amount: int, operator: str | None = None) -> None:
        self.mint_batch(to, [token_id], [amount], operator=operator)

    def mint_batch(
        self, to: str, token_ids: Sequence[int], amounts: Sequence[int], operator: str | None = None
    ) -> None:
        _check_batch(token_ids, amounts)
        to = canonical_address(to)
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("mint to the zero address")
        operator = canonical_address(operator) if operator is not None else self.address
        with self.atomic():
            for token_id, amount in zip(token_ids, amounts):
                self._credit(to, token_id, amount)
            self._emit_transfer(operator, ZERO_ADDRESS, to, token_ids, amounts)

    def burn(self, owner: str, token_id: int, amount: int, operator: str | None = None) -> None:
        self.burn_batch(owner, [token_id], [amount], operator=operator)

    def burn_batch(
        self, owner: str, token_ids: Sequence[int], amounts: Sequence[int], operator: str | None = None
    ) -> None:
        _check_batch(token_ids, amounts)
        owner = canonical_address(owner)
        operator = canonical_address(operator) if operator is not None else self.address
        with self.atomic():
            for token_id, amount in zip(token_ids, amounts):
                self._debit(owner, token_id, amount)
            self._emit_transfer(operator, owner, ZERO_ADDRESS, token_ids, amounts)

    # --- transfers ---
    def safe_transfer_from(
        self,
        operator: str,
        from_address: str,
        to: str,
        token_id: int,
        amount: int,
        data: bytes = b"",
    ) -> None:
        check_amount(amount)
        operator = canonical_address(operator)
        from_address = canonical_address(from_address)
        to = canonical_address(to)
        self._require_operator(operator, from_address)
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("transfer to the zero address")
        with self.atomic():
            self._debit(from_address, token_id, amount)
            self._credit(to, token_id, amount)
            self._emit(
                TransferSingle(
                    operator=operator, from_address=from_address, to_address=to, token_id=token_id, value=amount
                )
            )
            receiver = self._receivers.get(to)
            if receiver is not None:
                receiver.on_erc1155_received(self, operator, from_address, token_id, amount, data)

    def safe_batch_transfer_from(
        self,
        operator: str,
        from_address: str,
        to: str,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        data: bytes = b"",
    ) -> None:
        _check_batch(token_ids, amounts)
        operator = canonical_address(operator)
        from_address = canonical_address(from_address)
        to = canonical_address(to)
        self._require_operator(operator, from_address)
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("transfer to the zero address")
        with self.atomic():
            for token_id, amount in zip(token_ids, amounts):
                self._debit(from_address, token_id, amount)
                self._credit(to, token_id, amount)
            self._emit_transfer(operator, from_address, to, token_ids, amounts)
            receiver = self._receivers.get(to)
            if receiver is not None:
                receiver.on_erc1155_batch_received(
                    self, operator, from_address, list(token_ids), list(amounts), data
                )

    def _require_operator(self, operator: str, owner: str) -> None:
        if operator != owner and not self._operators.get((owner, operator), False):
            log.warning("transfer_not_approved", owner=owner, operator=operator, book=self.name or self.address)
            raise NotApproved(owner, operator)

    def _emit_transfer(
        self, operator: str, from_address: str, to: str, token_ids: Sequence[int], amounts: Sequence[int]
    ) -> None:
        if len(token_ids) == 1:
            self._emit(
                TransferSingle(
                    operator=operator,
                    from_address=from_address,
                    to_address=to,
                    token_id=token_ids[0],
                    value=amounts[0],
                )
            )
        else:
            self._emit(
                TransferBatch(
                    operator=operator,
                    from_address=from_address,
                    to_address=to,
                    token_ids=list(token_ids),
                    values=list(amounts),
                )
            )
