"""Fungible collateral (ERC-20 semantics): transfer, approve, transfer_from."""

from __future__ import annotations

from ctfledger.errors import InsufficientAllowance, InvalidRecipient
from ctfledger.models.events import Approval, Transfer
from ctfledger.tokens.base import ZERO_ADDRESS, BalanceBook, canonical_address, check_amount

_FUNGIBLE = None  # single token key


class FungibleToken(BalanceBook):
    """In-memory fungible token. Callers pass the acting account explicitly."""

    def __init__(self, address: str, name: str = "", symbol: str = "") -> None:
        super().__init__(address, name)
        self.symbol = symbol
        self._allowances: dict[tuple[str, str], int] = {}

    @property
    def total_supply(self) -> int:
        # no burn: supply is whatever is held
        return sum(self._balances.values())

    def balance_of(self, owner: str) -> int:
        return self._balance(canonical_address(owner), _FUNGIBLE)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((canonical_address(owner), canonical_address(spender)), 0)

    def mint(self, to: str, amount: int) -> None:
        check_amount(amount)
        to = canonical_address(to)
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("mint to the zero address")
        with self.atomic():
            self._credit(to, _FUNGIBLE, amount)
            self._emit(Transfer(from_address=ZERO_ADDRESS, to_address=to, value=amount))

    def approve(self, owner: str, spender: str, amount: int) -> None:
        check_amount(amount)
        owner, spender = canonical_address(owner), canonical_address(spender)
        self._write(self._allowances, (owner, spender), amount)
        self._emit(Approval(owner=owner, spender=spender, value=amount))

    def transfer(self, sender: str, to: str, amount: int) -> None:
        check_amount(amount)
        with self.atomic():
            self._move(canonical_address(sender), canonical_address(to), amount)

    def transfer_from(self, spender: str, from_address: str, to: str, amount: int) -> None:
        """Move amount from from_address using spender's allowance (owner spends freely)."""
        check_amount(amount)
        spender, from_address = canonical_address(spender), canonical_address(from_address)
        with self.atomic():
            if spender != from_address:
                allowed = self._allowances.get((from_address, spender), 0)
                if allowed < amount:
                    raise InsufficientAllowance(from_address, spender, allowed, amount)
                self._write(self._allowances, (from_address, spender), allowed - amount)
            self._move(from_address, canonical_address(to), amount)

    def _move(self, from_address: str, to: str, amount: int) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("transfer to the zero address")
        self._debit(from_address, _FUNGIBLE, amount)
        self._credit(to, _FUNGIBLE, amount)
        self._emit(Transfer(from_address=from_address, to_address=to, value=amount))
